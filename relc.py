#!/usr/bin/env python3
"""relc - top-level CLI wrapper for the RELang compiler

Compatible with Python 3.8+.

Usage examples:
  ./relc.py game.rel -o game.hpp
  ./relc.py game.rel -o game.hpp --include stdafx.h --pointer-size 8
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from relc.compiler import Compiler


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    ap = argparse.ArgumentParser(prog="relc", description="RELang compiler")
    ap.add_argument("source", help="Input .rel declaration file")
    ap.add_argument("-o", dest="output", required=True, help="Output C++ header")
    ap.add_argument("--include", dest="includes", action="append", default=[],
                    help="Emit an #include for PATH (repeatable; use <PATH> for system headers)")
    ap.add_argument("--pointer-size", type=int, default=None,
                    help="Pointer size in bytes of the target binary (default: $RELC_POINTER_SIZE or 4)")
    ap.add_argument("--no-size-assert", action="store_true", help="Do not emit class size assertions")
    ap.add_argument("--lenient", action="store_true",
                    help="Warn instead of failing on misplaced modifiers/return types/calling conventions")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )

    try:
        compiler = Compiler(
            strict=not args.lenient,
            pointer_size=args.pointer_size,
            size_assertions=not args.no_size_assert,
            includes=args.includes,
        )
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    result = compiler.compile_file(args.source, args.output)
    for w in result.warnings:
        print("Warning:", w)
    if not result.success:
        for e in result.errors:
            print("Error:", e)
        return 1
    print("Done:", args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
