#!/usr/bin/env python3
"""
TexSpell Command Line
=====================
Interactive, context-aware spell correction that remembers each correction.

Commands:
    texspell correct FILE [--offset N | --line L [--column C]] [--local] [--all]
    texspell expand FILE [--in-place] [--local]
    texspell memory list|remove|export|import|stats
    texspell engines

Exit codes: 0 success, 1 nothing to correct, 2 error.
"""

import argparse
import json
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from config_logging import (
    ConfigurationError, NoEligibleWordError, TexSpellError, VERSION, get_config,
    get_logger, handle_errors,
)
from corrector import SpellCorrector
from document import TextDocument
from markup_grammar import GRAMMARS, get_grammar
from memory_store import Scope, get_store
import spell_engines
from spell_engines import config as engine_config

__version__ = VERSION

_logger = get_logger('texspell')

EXIT_OK = 0
EXIT_NOTHING_TO_CORRECT = 1
EXIT_ERROR = 2


def _load_app_config():
    config = get_config()
    valid, errors = config.validate()
    if not valid:
        raise ConfigurationError("Invalid configuration", errors=errors)
    return config


def _load_document(args) -> TextDocument:
    grammar = get_grammar(args.grammar) if getattr(args, 'grammar', None) else None
    return TextDocument.from_file(args.file, grammar=grammar)


def _initial_point(doc: TextDocument, args) -> int:
    if args.offset is not None:
        if not 0 <= args.offset <= len(doc.text):
            raise ValueError(f"Offset {args.offset} is outside the document (0-{len(doc.text)})")
        return args.offset
    if args.line is not None:
        return doc.position_of(args.line, args.column or 0)
    return len(doc.text)


def editor_recursive_edit(stdscr):
    """Recursive edit hook that opens $EDITOR on the saved document."""
    import curses

    def hook(doc: TextDocument, pos: int):
        editor = os.environ.get('VISUAL') or os.environ.get('EDITOR') or 'vi'
        doc.save()
        curses.def_prog_mode()
        curses.endwin()
        try:
            subprocess.call([editor, f'+{doc.line_number(pos)}', str(doc.path)])
        finally:
            curses.reset_prog_mode()
            stdscr.refresh()
        with open(doc.path, 'r', encoding='utf-8') as f:
            doc.set_text(f.read())
        _logger.info("Recursive edit finished", editor=editor, path=doc.path)

    return hook


# =============================================================================
# correct
# =============================================================================

@handle_errors(_logger)
def cmd_correct(args) -> int:
    import curses
    from terminal_display import TerminalDisplay

    config = _load_app_config()
    if args.engine:
        engine_config.set('engine', args.engine)
    doc = _load_document(args)
    doc.point = _initial_point(doc, args)
    if not args.all:
        doc.scroll_to(doc.point, config.viewport_lines)

    engine = spell_engines.engine_from_config()
    store = get_store(config.memory_db)
    notices: List[str] = []

    def session(stdscr) -> int:
        doc.recursive_edit_hook = editor_recursive_edit(stdscr)
        display = TerminalDisplay(stdscr, doc)
        corrector = SpellCorrector(doc, engine, display, store, config)

        if args.all:
            reports = list(corrector.correct_all(args.local))
            if not reports:
                notices.append("No typo at or before point")
                return EXIT_NOTHING_TO_CORRECT
        else:
            try:
                reports = [corrector.correct_previous_word(args.local)]
            except NoEligibleWordError as e:
                notices.append(e.message)
                return EXIT_NOTHING_TO_CORRECT

        for report in reports:
            notices.extend(report.messages)
            if report.query_replace and report.replacement:
                corrector.query_replace_occurrences(report.misspelling.word, report.replacement,
                                                    from_pos=doc.point)
        return EXIT_OK

    try:
        status = curses.wrapper(session)
    finally:
        engine.flush_personal_dictionary()
        engine.terminate()

    for notice in notices:
        print(notice)
    if doc.modified:
        doc.save()
        print(f"Saved {doc.path}")
    return status


# =============================================================================
# expand
# =============================================================================

@handle_errors(_logger)
def cmd_expand(args) -> int:
    config = _load_app_config()
    doc = _load_document(args)
    store = get_store(config.memory_db)
    document_id = doc.document_id if args.local else None

    text, count = store.expand_text(doc.text, document_id)
    if args.in_place:
        doc.set_text(text)
        if doc.modified:
            doc.save()
        print(f"Expanded {count} word{'s' if count != 1 else ''} in {doc.path}")
    else:
        sys.stdout.write(text)
    return EXIT_OK


# =============================================================================
# memory
# =============================================================================

@handle_errors(_logger)
def cmd_memory(args) -> int:
    config = _load_app_config()
    store = get_store(config.memory_db)

    if args.action == 'list':
        scope = Scope(args.scope) if args.scope else None
        mappings = store.list_mappings(scope)
        if args.json:
            print(json.dumps([m.to_dict() for m in mappings], indent=2))
        else:
            for m in mappings:
                where = f"  [{m.document_id}]" if m.scope is Scope.LOCAL else ''
                print(f"{m.trigger} -> {m.expansion}  ({m.scope.value}){where}")
        return EXIT_OK

    if args.action == 'remove':
        if args.document:
            document_id = TextDocument.from_file(args.document).document_id
            removed = store.remove(args.trigger, Scope.LOCAL, document_id)
        else:
            removed = store.remove(args.trigger, Scope.GLOBAL)
        print(f"Removed {args.trigger}" if removed else f"No correction memorized for {args.trigger}")
        return EXIT_OK if removed else EXIT_NOTHING_TO_CORRECT

    if args.action == 'export':
        data = store.export_data()
        with open(args.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        print(f"Exported {len(data['global'])} global and {len(data['local'])} local corrections")
        return EXIT_OK

    if args.action == 'import':
        with open(args.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        print(f"Imported {store.import_data(data)} corrections")
        return EXIT_OK

    print(json.dumps(store.get_statistics(), indent=2))
    return EXIT_OK


def cmd_engines(args) -> int:
    print(json.dumps(spell_engines.get_status(), indent=2, default=str))
    return EXIT_OK


# =============================================================================
# Entry point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='texspell',
        description='Context-aware spell correction that memorizes corrections'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {VERSION}')
    sub = parser.add_subparsers(dest='command', required=True)

    correct = sub.add_parser('correct', help='Correct the nearest misspelling before a position')
    correct.add_argument('file', type=Path)
    where = correct.add_mutually_exclusive_group()
    where.add_argument('--offset', type=int, help='Character offset of the cursor')
    where.add_argument('--line', type=int, help='1-based line of the cursor')
    correct.add_argument('--column', type=int, help='0-based column (with --line)')
    correct.add_argument('--local', action='store_true',
                         help='Memorize the correction for this document only')
    correct.add_argument('--all', action='store_true',
                         help='Keep correcting back to the top of the document')
    correct.add_argument('--engine', choices=spell_engines.ENGINE_NAMES)
    correct.add_argument('--grammar', choices=sorted(GRAMMARS))
    correct.set_defaults(func=cmd_correct)

    expand = sub.add_parser('expand', help='Apply memorized corrections to a file')
    expand.add_argument('file', type=Path)
    expand.add_argument('--in-place', action='store_true', help='Rewrite the file')
    expand.add_argument('--local', action='store_true',
                        help="Also apply this document's local corrections")
    expand.add_argument('--grammar', choices=sorted(GRAMMARS))
    expand.set_defaults(func=cmd_expand)

    memory = sub.add_parser('memory', help='Inspect the correction memory')
    actions = memory.add_subparsers(dest='action', required=True)
    listing = actions.add_parser('list')
    listing.add_argument('--scope', choices=[s.value for s in Scope])
    listing.add_argument('--json', action='store_true')
    remove = actions.add_parser('remove')
    remove.add_argument('trigger')
    remove.add_argument('--document', type=Path, help='Remove the local correction of this file')
    export = actions.add_parser('export')
    export.add_argument('path', type=Path)
    importing = actions.add_parser('import')
    importing.add_argument('path', type=Path)
    actions.add_parser('stats')
    memory.set_defaults(func=cmd_memory)

    engines = sub.add_parser('engines', help='Show which dictionary engines are available')
    engines.set_defaults(func=cmd_engines)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if getattr(args, 'column', None) is not None and args.line is None:
        parser.error('--column requires --line')

    try:
        return args.func(args)
    except NoEligibleWordError as e:
        print(e.message)
        return EXIT_NOTHING_TO_CORRECT
    except TexSpellError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        for detail in e.details.get('errors', []) if isinstance(e.details, dict) else []:
            print(f"  - {detail}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
