"""
Tests for the Document Editing Surface
======================================
Word motion, search, viewport, replacement and LocalWords handling.
"""

import re

import pytest

from document import Span, TextDocument
from markup_grammar import LATEX_GRAMMAR


class TestSpan:

    def test_length_and_membership(self):
        span = Span(2, 5)
        assert len(span) == 3
        assert 2 in span and 4 in span and 5 not in span

    def test_reversed_span_rejected(self):
        with pytest.raises(ValueError):
            Span(5, 2)


class TestWordMotion:
    """Tests for backward_word/forward_word/word_at."""

    def test_backward_word_from_end(self):
        doc = TextDocument("Thiss is a test.")
        assert doc.backward_word(len(doc.text)) == doc.text.index('test')

    def test_backward_word_inside_word(self):
        doc = TextDocument("alpha beta")
        assert doc.backward_word(8) == 6

    def test_backward_word_at_word_start_moves_to_previous(self):
        doc = TextDocument("alpha beta")
        assert doc.backward_word(6) == 0

    def test_backward_word_crosses_lines(self):
        doc = TextDocument("first\n\n  ")
        assert doc.backward_word(len(doc.text)) == 0

    def test_backward_word_at_top(self):
        doc = TextDocument("   word")
        assert doc.backward_word(3) is None

    def test_forward_word(self):
        doc = TextDocument("one two")
        assert doc.forward_word(3) == 7

    def test_forward_word_at_bottom(self):
        assert TextDocument("one  ").forward_word(3) is None

    def test_word_at_start(self):
        doc = TextDocument("say don't go")
        word, span = doc.word_at(4)
        assert word == "don't"
        assert span == Span(4, 9)

    def test_word_at_gap(self):
        assert TextDocument("a  b").word_at(2) is None

    def test_digits_are_not_words(self):
        doc = TextDocument("abc 123")
        assert doc.backward_word(len(doc.text)) == 0


class TestSearchAndViewport:

    def test_search_backward_within_bound(self):
        doc = TextDocument("ref one ref two")
        match = doc.search_backward(r"ref", len(doc.text), bound=1)
        assert match.start() == 8

    def test_search_backward_respects_bound(self):
        doc = TextDocument("ref one")
        assert doc.search_backward(re.compile("ref"), 7, bound=1) is None

    def test_search_forward_bound(self):
        doc = TextDocument("aaa bbb")
        assert doc.search_forward("bbb", 0, bound=5) is None
        assert doc.search_forward("bbb", 0).start() == 4

    def test_default_viewport_is_whole_document(self):
        doc = TextDocument("one\ntwo")
        assert doc.viewport_start() == 0
        assert doc.is_visible(len(doc.text))

    def test_scroll_to_limits_lines(self):
        doc = TextDocument("l1\nl2\nl3\nl4")
        doc.scroll_to(doc.position_of(4), lines=2)
        assert doc.viewport_start() == doc.position_of(3)
        assert not doc.is_visible(0)

    def test_set_viewport_rejects_reversed(self):
        with pytest.raises(ValueError):
            TextDocument("abc").set_viewport(2, 1)

    def test_position_and_line_number(self):
        doc = TextDocument("ab\ncd\nef")
        assert doc.position_of(2, 1) == 4
        assert doc.line_number(4) == 2
        assert doc.line_beginning(5) == 3


class TestEditing:

    def test_replace_shifts_point(self):
        doc = TextDocument("Thiss is", point=8)
        doc.replace(Span(0, 5), "This")
        assert doc.text == "This is"
        assert doc.point == 7
        assert doc.modified

    def test_replace_outside_document(self):
        with pytest.raises(ValueError):
            TextDocument("abc").replace(Span(2, 9), "x")

    def test_highlight(self):
        doc = TextDocument("word")
        doc.highlight(Span(0, 4))
        assert doc.highlighted == Span(0, 4)
        doc.clear_highlight()
        assert doc.highlighted is None

    def test_recursive_edit_calls_hook(self):
        calls = []
        doc = TextDocument("abc", recursive_edit_hook=lambda d, pos: calls.append(pos))
        doc.recursive_edit(1)
        assert calls == [1]
        assert doc.point == 1

    def test_file_round_trip(self, tmp_path):
        path = tmp_path / 'paper.tex'
        path.write_text("Hello wrld\n", encoding='utf-8')
        doc = TextDocument.from_file(path)
        assert doc.grammar is LATEX_GRAMMAR
        doc.replace(Span(6, 10), "world")
        doc.save()
        assert path.read_text(encoding='utf-8') == "Hello world\n"
        assert not doc.modified


class TestLocalWords:

    def test_reads_local_words(self):
        doc = TextDocument("text\n% LocalWords: foo bar\n%  LocalWords: baz foo\n",
                           grammar=LATEX_GRAMMAR)
        assert doc.local_words() == ['foo', 'bar', 'baz']

    def test_add_creates_comment_line(self):
        doc = TextDocument("text", grammar=LATEX_GRAMMAR)
        doc.add_local_word('Thiss')
        assert doc.text == "text\n% LocalWords: Thiss\n"
        assert doc.modified

    def test_add_appends_to_existing_line(self):
        doc = TextDocument("text\n% LocalWords: foo\n", grammar=LATEX_GRAMMAR)
        doc.add_local_word('bar')
        assert doc.text == "text\n% LocalWords: foo bar\n"

    def test_add_existing_word_is_noop(self):
        doc = TextDocument("text\n% LocalWords: foo\n", grammar=LATEX_GRAMMAR)
        doc.add_local_word('foo')
        assert not doc.modified

    def test_plain_text_uses_hash_comments(self):
        doc = TextDocument("notes\n")
        doc.add_local_word('qux')
        assert doc.local_words() == ['qux']
        assert doc.text.endswith("# LocalWords: qux\n")
