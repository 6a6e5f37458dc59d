"""
Markup Grammar Tables
=====================
Data-driven description of the markup constructs that gate correction offers.

Each grammar lists:
- math delimiters and math environments (no spelling inside)
- text-in-math commands whose argument is prose again
- the comment starter and whether the mode is comment-aware
- characters that introduce markup (words right after them are skipped)
- commands whose leading arguments are identifiers, not prose

Only enough of the grammar is modelled to decide whether a word is offered
for correction. Nothing here parses a full document.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

__version__ = "1.0.0"


@dataclass(frozen=True)
class MathDelimiter:
    """An inline or display math delimiter pair."""
    open: str
    close: str


@dataclass(frozen=True)
class ArgumentRule:
    """
    How many leading arguments of a command hold identifiers rather than prose.

    skipped_args counts brace groups. Bracketed optional groups that appear
    before the last skipped brace group are skipped too when optional_args
    is set (``\\cite[p.~4]{key}``).
    """
    skipped_args: int = 1
    optional_args: bool = True

    def covers(self, text: str, start: int, pos: int, grammar: 'MarkupGrammar') -> bool:
        """
        Return True if pos lies inside one of the skipped argument groups of
        a command whose name ends at start.

        Only text[start:pos] is examined. An argument that is still open at
        pos counts as covering it.
        """
        escape = grammar.escape_char
        closed = 0
        depth = 0
        in_optional = False
        i = start

        if text[i:i + 1] == '*':
            i += 1

        while i < pos:
            ch = text[i]
            if escape and ch == escape:
                i += 2
                continue

            if in_optional:
                if ch == grammar.opt_close:
                    in_optional = False
            elif depth == 0:
                if ch == grammar.arg_open:
                    if closed >= self.skipped_args:
                        return False
                    depth = 1
                elif ch == grammar.opt_open and self.optional_args:
                    in_optional = True
                elif not ch.isspace():
                    return False
            else:
                if ch == grammar.arg_open:
                    depth += 1
                elif ch == grammar.arg_close:
                    depth -= 1
                    if depth == 0:
                        closed += 1
                        if closed >= self.skipped_args:
                            return False
            i += 1

        return in_optional or depth > 0


@dataclass
class MarkupGrammar:
    """Rule tables for one document mode."""
    name: str
    escape_char: Optional[str] = None
    introducer_chars: FrozenSet[str] = frozenset()
    comment_start: Optional[str] = None
    comment_aware: bool = False
    math_delimiters: Tuple[MathDelimiter, ...] = ()
    math_environments: FrozenSet[str] = frozenset()
    text_in_math_commands: FrozenSet[str] = frozenset()
    argument_rules: Dict[str, ArgumentRule] = field(default_factory=dict)
    local_words_marker: str = "LocalWords:"
    arg_open: str = "{"
    arg_close: str = "}"
    opt_open: str = "["
    opt_close: str = "]"

    def __post_init__(self):
        self._command_pattern = None

    def argument_rule(self, command: str) -> Optional[ArgumentRule]:
        """Rule for a command name (without escape or star), if any."""
        return self.argument_rules.get(command)

    def is_math_environment(self, name: str) -> bool:
        return name in self.math_environments

    @property
    def command_pattern(self) -> Optional['re.Pattern']:
        """
        Regex matching any rule-table command.

        Group 1 is the command name. The match ends right after the name, so
        an optional star stays in front of the arguments.
        """
        if not self.escape_char or not self.argument_rules:
            return None
        if self._command_pattern is None:
            names = sorted(self.argument_rules, key=len, reverse=True)
            alternation = '|'.join(re.escape(n) for n in names)
            self._command_pattern = re.compile(
                re.escape(self.escape_char) + r'(' + alternation + r')(?![A-Za-z@])'
            )
        return self._command_pattern

    def local_words_pattern(self) -> Optional['re.Pattern']:
        """Regex matching a per-document accepted-words comment line."""
        if not self.comment_start:
            return None
        return re.compile(
            r'^' + re.escape(self.comment_start) + r'+\s*'
            + re.escape(self.local_words_marker) + r'[ \t]*(.*)$',
            re.MULTILINE
        )


# =============================================================================
# LaTeX
# =============================================================================

_REFERENCE = ArgumentRule(skipped_args=1)

LATEX_ARGUMENT_RULES: Dict[str, ArgumentRule] = {
    # Cross references
    'ref': _REFERENCE,
    'eqref': _REFERENCE,
    'pageref': _REFERENCE,
    'autoref': _REFERENCE,
    'nameref': _REFERENCE,
    'vref': _REFERENCE,
    'cref': _REFERENCE,
    'Cref': _REFERENCE,
    'label': _REFERENCE,
    # Hyperlinks: the URL is skipped, link text is prose
    'href': _REFERENCE,
    'url': _REFERENCE,
    'nolinkurl': _REFERENCE,
    'hyperref': ArgumentRule(skipped_args=0),
    # Citations
    'cite': _REFERENCE,
    'citep': _REFERENCE,
    'citet': _REFERENCE,
    'citealp': _REFERENCE,
    'citealt': _REFERENCE,
    'citeauthor': _REFERENCE,
    'citeyear': _REFERENCE,
    'parencite': _REFERENCE,
    'textcite': _REFERENCE,
    'autocite': _REFERENCE,
    'footcite': _REFERENCE,
    'nocite': _REFERENCE,
    # Environments
    'begin': _REFERENCE,
    'end': _REFERENCE,
    # File and package names
    'input': _REFERENCE,
    'include': _REFERENCE,
    'includegraphics': _REFERENCE,
    'bibliography': _REFERENCE,
    'bibliographystyle': _REFERENCE,
    'usepackage': _REFERENCE,
    'documentclass': _REFERENCE,
}

LATEX_MATH_ENVIRONMENTS = frozenset(
    base + star
    for base in ('equation', 'align', 'alignat', 'flalign', 'gather',
                 'multline', 'eqnarray', 'dmath')
    for star in ('', '*')
) | frozenset({'math', 'displaymath'})

LATEX_GRAMMAR = MarkupGrammar(
    name='latex',
    escape_char='\\',
    introducer_chars=frozenset({'\\', '[', '{'}),
    comment_start='%',
    comment_aware=True,
    math_delimiters=(
        MathDelimiter('$$', '$$'),
        MathDelimiter('$', '$'),
        MathDelimiter('\\(', '\\)'),
        MathDelimiter('\\[', '\\]'),
    ),
    math_environments=LATEX_MATH_ENVIRONMENTS,
    text_in_math_commands=frozenset({
        'text', 'textrm', 'textit', 'textbf', 'textsf', 'textnormal',
        'mbox', 'hbox', 'intertext', 'shortintertext',
    }),
    argument_rules=LATEX_ARGUMENT_RULES,
)

# =============================================================================
# Plain text
# =============================================================================

PLAIN_GRAMMAR = MarkupGrammar(name='plain', comment_start='#')

GRAMMARS: Dict[str, MarkupGrammar] = {
    'latex': LATEX_GRAMMAR,
    'plain': PLAIN_GRAMMAR,
}

LATEX_SUFFIXES = ('.tex', '.ltx', '.sty', '.cls', '.dtx', '.latex')


def get_grammar(name: str) -> MarkupGrammar:
    """Look up a grammar by name."""
    try:
        return GRAMMARS[name]
    except KeyError:
        raise ValueError(f"Unknown grammar: {name}. Choose from {sorted(GRAMMARS)}")


def grammar_for_path(path) -> MarkupGrammar:
    """Pick the grammar from a file name suffix."""
    if path and Path(path).suffix.lower() in LATEX_SUFFIXES:
        return LATEX_GRAMMAR
    return PLAIN_GRAMMAR


# =============================================================================
# Math regions
# =============================================================================

def _math_token_pattern(grammar: MarkupGrammar) -> 're.Pattern':
    esc = re.escape(grammar.escape_char)
    parts = []
    if grammar.comment_start:
        # Group 'comment'
        parts.append(r'(?P<comment>' + re.escape(grammar.comment_start) + r'[^\n]*)')
    parts.append(r'(?P<env>' + esc + r'(?P<kind>begin|end)\s*\{(?P<envname>[^}\n]*)\})')
    if grammar.text_in_math_commands:
        names = '|'.join(sorted(grammar.text_in_math_commands, key=len, reverse=True))
        parts.append(r'(?P<textcmd>' + esc + r'(?:' + names + r')\s*\{)')
    delimiters = sorted(
        {d.open for d in grammar.math_delimiters} | {d.close for d in grammar.math_delimiters},
        key=len, reverse=True
    )
    parts.append(r'(?P<delim>' + '|'.join(re.escape(d) for d in delimiters) + r')')
    # Escaped characters never toggle anything
    parts.append(r'(?P<escaped>' + esc + r'.)')
    return re.compile('|'.join(parts), re.DOTALL)


def _matching_brace(text: str, open_index: int, grammar: MarkupGrammar) -> int:
    """Index just past the brace group opened at open_index (or len(text))."""
    depth = 0
    i = open_index
    while i < len(text):
        ch = text[i]
        if ch == grammar.escape_char:
            i += 2
            continue
        if ch == grammar.arg_open:
            depth += 1
        elif ch == grammar.arg_close:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return len(text)


def math_regions(text: str, grammar: MarkupGrammar) -> List[Tuple[int, int]]:
    """
    Compute the math regions of a text as sorted, non-overlapping
    (start, end) pairs.

    Region bounds exclude the delimiters. Arguments of text-in-math commands
    are cut out of the enclosing region. A region still open at the end of
    the text runs to the end of the text.
    """
    if not grammar.math_delimiters and not grammar.math_environments:
        return []

    openers = {d.open: d.close for d in grammar.math_delimiters}
    pattern = _math_token_pattern(grammar)

    regions: List[Tuple[int, int]] = []
    closing: Optional[str] = None   # delimiter or environment name that ends the region
    closing_env = False
    region_start = 0
    pos = 0

    while True:
        m = pattern.search(text, pos)
        if not m:
            break
        pos = m.end()
        groups = m.groupdict()

        if groups.get('comment') is not None or groups.get('escaped') is not None:
            continue

        if groups.get('env') is not None:
            name = groups['envname'].strip()
            if groups['kind'] == 'begin':
                if closing is None and grammar.is_math_environment(name):
                    closing, closing_env, region_start = name, True, m.end()
            elif closing_env and name == closing:
                regions.append((region_start, m.start()))
                closing, closing_env = None, False
            continue

        if groups.get('textcmd') is not None:
            if closing is not None:
                brace_end = _matching_brace(text, m.end() - 1, grammar)
                regions.append((region_start, m.end()))
                region_start = brace_end
                pos = brace_end
            continue

        # Mismatched delimiters inside math are plain content
        token = groups['delim']
        if closing is None:
            if token in openers:
                closing, closing_env, region_start = openers[token], False, m.end()
        elif not closing_env and token == closing:
            regions.append((region_start, m.start()))
            closing = None

    if closing is not None:
        regions.append((region_start, len(text)))

    return [(s, e) for s, e in regions if e > s]
