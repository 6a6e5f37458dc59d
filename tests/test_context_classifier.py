"""
Tests for the Context Classifier
================================
Eligibility of word positions in LaTeX and plain-text documents.
"""

import pytest

from context_classifier import (
    REASON_ARGUMENT, REASON_COMMENT, REASON_INTRODUCER, REASON_MATH, ContextClassifier,
)
from document import TextDocument
from markup_grammar import LATEX_GRAMMAR, PLAIN_GRAMMAR


def classify(text, word, grammar=LATEX_GRAMMAR, occurrence=0, **kwargs):
    doc = TextDocument(text, grammar=grammar)
    pos = -1
    for _ in range(occurrence + 1):
        pos = text.index(word, pos + 1)
    return ContextClassifier(doc, grammar, **kwargs).rejection_reason(pos)


class TestLatexRules:
    """Tests for each rejection rule in LaTeX mode."""

    def test_plain_prose_is_eligible(self):
        assert classify("Thiss is a test.", 'Thiss') is None

    def test_inline_math(self):
        assert classify("where $alpha + beta$ holds", 'alpha') == REASON_MATH

    def test_after_math(self):
        assert classify("where $x$ holds", 'holds') is None

    def test_math_environment(self):
        text = "\\begin{equation}\nfoo = bar\n\\end{equation}\n"
        assert classify(text, 'foo') == REASON_MATH

    def test_text_inside_math(self):
        assert classify(r"$\text{if wrod} + x$", 'wrod') is None

    def test_comment(self):
        assert classify("text % a commnet\n", 'commnet') == REASON_COMMENT

    def test_escaped_percent_is_not_comment(self):
        assert classify(r"50\% of wrods", 'wrods') is None

    def test_comment_rule_disabled(self):
        assert classify("text % a commnet\n", 'commnet', comment_aware=False) is None

    def test_citation_argument(self):
        assert classify(r"see \cite{knuth thiss}", 'thiss') == REASON_ARGUMENT

    def test_word_after_citation(self):
        assert classify(r"see \cite{knuth} thiss", 'thiss') is None

    def test_label_with_colon(self):
        assert classify(r"\label{sec:intro}", 'intro') == REASON_ARGUMENT

    def test_argument_rule_limited_to_current_line(self):
        text = "\\cite{knuth,\nthiss}"
        assert classify(text, 'thiss') is None

    def test_introducer(self):
        assert classify(r"\emph{wrod}", 'wrod') == REASON_INTRODUCER

    def test_optional_group_introducer(self):
        assert classify(r"\item[wrod] text", 'wrod') == REASON_INTRODUCER

    def test_command_name(self):
        assert classify(r"\textbf", 'textbf') == REASON_INTRODUCER

    def test_start_of_document(self):
        assert classify("word", 'word') is None

    def test_math_takes_precedence(self):
        assert classify(r"$\cite{x}$", 'x') == REASON_MATH


class TestRegionCache:

    def test_regions_follow_text_changes(self):
        doc = TextDocument("a $b$ c", grammar=LATEX_GRAMMAR)
        classifier = ContextClassifier(doc, LATEX_GRAMMAR)
        assert classifier.in_math(3)
        doc.set_text("a  b  c")
        assert not classifier.in_math(3)


class TestPlainText:

    @pytest.mark.parametrize('text,word', [
        ("cost $x$ here", 'x'),
        (r"\cite{thiss}", 'thiss'),
        ("text # commnet", 'commnet'),
    ])
    def test_plain_grammar_accepts(self, text, word):
        assert classify(text, word, grammar=PLAIN_GRAMMAR) is None

    def test_plain_comment_when_enabled(self):
        text = "text # commnet"
        assert classify(text, 'commnet', grammar=PLAIN_GRAMMAR, comment_aware=True) == REASON_COMMENT
