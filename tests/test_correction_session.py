"""
Tests for the Correction Session
================================
Key parsing, choice labels and every session transition.
"""

import pytest

from correction_session import (
    COMMAND_KEYS, LABEL_ALPHABET, Action, CorrectionSession, SessionContext, SessionState,
    choice_labels, parse_key,
)
from document import Span, TextDocument
from markup_grammar import LATEX_GRAMMAR
from tests.conftest import FakeEngine, ScriptedDisplay
from word_scanner import Misspelling

TEXT = "Thiss is a test."


def misspelling(candidates=('This', 'Thies')):
    return Misspelling('Thiss', Span(0, 5), list(candidates))


def make_session(keys=(), lines=(), confirms=(), text=TEXT, hook=None, context=None,
                 word_list=('this', 'thistle', 'thesis')):
    doc = TextDocument(text, point=len(text), grammar=LATEX_GRAMMAR, recursive_edit_hook=hook)
    engine = FakeEngine(known=['is', 'a', 'test'], word_list=word_list)
    display = ScriptedDisplay(keys=keys, lines=lines, confirms=confirms)
    context = context or SessionContext(origin=doc.point)
    return CorrectionSession(doc, engine, display, context), doc, engine, display


class TestLabels:
    """Tests for choice labels and key parsing."""

    def test_digits_come_first(self):
        assert choice_labels(10) == list('0123456789')

    def test_eleventh_label_is_colon(self):
        assert choice_labels(11)[10] == ':'

    def test_labels_skip_command_keys(self):
        assert not set(LABEL_ALPHABET) & set(COMMAND_KEYS)
        assert 'B' in LABEL_ALPHABET
        assert 'A' not in LABEL_ALPHABET

    def test_labels_are_unique(self):
        labels = choice_labels(len(LABEL_ALPHABET))
        assert len(labels) == len(set(labels))

    def test_excess_candidates_get_no_label(self):
        assert len(choice_labels(500)) == len(LABEL_ALPHABET)

    def test_command_key_wins(self):
        assert parse_key('i', 100) == (Action.ACCEPT_INSERT_DICT, None)

    def test_label_selects_existing_candidate(self):
        assert parse_key('1', 2) == (Action.SELECT_CANDIDATE, 1)

    def test_label_without_candidate(self):
        assert parse_key('5', 2) == (Action.UNRECOGNIZED, None)

    def test_function_key_name(self):
        assert parse_key('KEY_F(1)', 3) == (Action.UNRECOGNIZED, None)

    @pytest.mark.parametrize('key', ['\r', '\n'])
    def test_return_skips(self, key):
        assert parse_key(key, 0)[0] is Action.SKIP


class TestAcceptActions:

    def test_accept_once(self):
        session, doc, engine, display = make_session(keys=[' '])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.SKIPPED
        assert engine.personal == []
        assert doc.text == TEXT

    def test_insert_personal(self):
        session, doc, engine, display = make_session(keys=['i'])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.SKIPPED
        assert engine.personal == ['Thiss']
        assert engine.pending_personal_words == ['Thiss']
        assert session.context.dictionary_modified

    def test_insert_lowercase(self):
        session, doc, engine, display = make_session(keys=['u'])
        session.run(misspelling())
        assert engine.personal == ['thiss']

    def test_accept_session(self):
        session, doc, engine, display = make_session(keys=['a'])
        session.run(misspelling())
        assert engine.check_word('Thiss').status.value == 'correct'
        assert not session.context.dictionary_modified
        assert doc.text == TEXT

    def test_accept_in_buffer(self):
        session, doc, engine, display = make_session(keys=['A'])
        session.run(misspelling())
        assert doc.local_words() == ['Thiss']
        assert session.context.buffer_modified


class TestReplaceActions:

    def test_select_candidate(self):
        session, doc, engine, display = make_session(keys=['0'])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.REPLACED
        assert outcome.replacement == 'This'
        assert not outcome.query_replace

    @pytest.mark.parametrize('index', range(12))
    def test_selecting_label_yields_that_candidate(self, index):
        candidates = [f'cand{i}' for i in range(12)]
        label = choice_labels(12)[index]
        session, doc, engine, display = make_session(keys=[label])
        outcome = session.run(misspelling(candidates))
        assert outcome.replacement == candidates[index]

    def test_select_with_query_replace_choices(self):
        context = SessionContext(query_replace_choices=True)
        session, doc, engine, display = make_session(keys=['1'], context=context)
        outcome = session.run(misspelling())
        assert outcome.replacement == 'Thies'
        assert outcome.query_replace

    def test_replace_with_typed_text(self):
        session, doc, engine, display = make_session(keys=['r'], lines=['These'])
        outcome = session.run(misspelling())
        assert outcome.replacement == 'These'
        assert display.prompts[0][1] == 'Thiss'

    def test_query_replace(self):
        session, doc, engine, display = make_session(keys=['R'], lines=['This'])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.REPLACED
        assert outcome.query_replace

    def test_cancelled_replace_keeps_prompting(self):
        session, doc, engine, display = make_session(keys=['r', ' '], lines=[None])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.SKIPPED
        assert len(display.renders) == 2

    def test_empty_replacement_keeps_prompting(self):
        session, doc, engine, display = make_session(keys=['r', '0'], lines=[''])
        assert session.run(misspelling()).replacement == 'This'


class TestOtherActions:

    def test_help_then_continue(self):
        session, doc, engine, display = make_session(keys=['?', ' '])
        session.run(misspelling())
        assert display.helps == 1

    def test_unrecognized_key_rings_bell(self):
        session, doc, engine, display = make_session(keys=['7', 'Z', ' '])
        outcome = session.run(misspelling())
        assert display.bells == 2
        assert outcome.state is SessionState.SKIPPED

    def test_lookup_replaces_candidates(self):
        session, doc, engine, display = make_session(keys=['l', '1'], lines=['th*is'])
        outcome = session.run(misspelling())
        assert display.last_candidates == ['this', 'thesis']
        assert outcome.replacement == 'thesis'

    def test_lookup_without_matches_keeps_candidates(self):
        session, doc, engine, display = make_session(keys=['l', '0'], lines=['zz*'])
        outcome = session.run(misspelling())
        assert outcome.replacement == 'This'
        assert any('No words match' in m for m in display.messages)

    def test_raw_insert(self):
        session, doc, engine, display = make_session(keys=['m'], lines=['Thisses'])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.SKIPPED
        assert engine.personal == ['Thisses']
        assert session.context.dictionary_modified

    def test_toggle_memorization(self):
        session, doc, engine, display = make_session(keys=['\x03', '0'])
        outcome = session.run(misspelling())
        assert outcome.replacement == 'This'
        assert session.context.memorize is False

    def test_highlight_cleared_after_session(self):
        session, doc, engine, display = make_session(keys=[' '])
        session.run(misspelling())
        assert doc.highlighted is None
        assert display.cleared >= 1


class TestQuitActions:

    def test_quit_save_position_returns_to_origin(self):
        context = SessionContext(origin=12)
        session, doc, engine, display = make_session(keys=['x'], context=context)
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.ABORTED
        assert outcome.resume_at == 12

    def test_quit_save_position_without_origin(self):
        context = SessionContext()
        session, doc, engine, display = make_session(keys=['x'], context=context)
        assert session.run(misspelling()).resume_at == 5

    def test_quit_discard_position(self):
        session, doc, engine, display = make_session(keys=['X'])
        outcome = session.run(misspelling())
        assert outcome.resume_at == 0

    def test_quit_flushes_personal_dictionary(self):
        session, doc, engine, display = make_session(keys=['X'])
        engine.insert_word('Thiss')
        session.run(misspelling())
        assert engine.flushed == ['Thiss']
        assert engine.pending_personal_words == []

    def test_kill_engine_confirmed(self):
        session, doc, engine, display = make_session(keys=['q'], confirms=[True])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.ABORTED
        assert engine.terminated
        assert engine.flush_calls == 1

    def test_kill_engine_declined(self):
        session, doc, engine, display = make_session(keys=['q', ' '], confirms=[False])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.SKIPPED
        assert not engine.terminated

    def test_ambiguous_input_aborts_at_word(self, ambiguous_event):
        session, doc, engine, display = make_session(keys=[ambiguous_event])
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.ABORTED
        assert outcome.resume_at == 0
        assert engine.flush_calls == 1


class TestRecursiveEdit:

    def test_resume_on_moved_word(self):
        def hook(doc, pos):
            doc.set_text("Well, " + doc.text)

        session, doc, engine, display = make_session(keys=['\x12', '0'], hook=hook)
        outcome = session.run(misspelling())
        assert outcome.replacement == 'This'
        assert session.span == Span(6, 11)
        assert not session.context.guard.pending

    def test_word_removed_during_edit(self):
        def hook(doc, pos):
            doc.set_text("This is a test.")

        session, doc, engine, display = make_session(keys=['\x12'], hook=hook)
        assert session.run(misspelling()).state is SessionState.SKIPPED

    def test_second_recursive_edit_refused(self):
        context = SessionContext(origin=len(TEXT))
        context.guard.pending = True
        session, doc, engine, display = make_session(keys=['\x12', ' '], context=context)
        outcome = session.run(misspelling())
        assert outcome.state is SessionState.SKIPPED
        assert display.bells == 1
        assert any('recursive edit' in m for m in display.messages)
        assert context.guard.pending

    def test_nested_edit_from_hook_is_refused(self):
        nested = []

        def hook(doc, pos):
            inner, _, _, inner_display = make_session(keys=['\x12', ' '], context=session.context)
            inner.run(misspelling())
            nested.append(inner_display.bells)

        session, doc, engine, display = make_session(keys=['\x12', ' '], hook=hook)
        session.run(misspelling())
        assert nested == [1]
