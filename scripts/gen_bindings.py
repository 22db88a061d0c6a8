#!/usr/bin/env python3
"""
gen_bindings.py - FFI binding generator entry point

Reads a declaration IR (JSON) and writes the generated Rust bindings.

Usage:
    python scripts/gen_bindings.py IR.json [--target c-abi|python] [--output PATH]
"""

import argparse
import os
import sys

# Add scripts directory to path
script_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, script_dir)

from ffi_binding_gen import IR, BindingConfig, Generator, Target
from ffi_binding_gen.generator import EDITIONS


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Generate Rust FFI bindings')
    parser.add_argument('ir', help='Path to the declaration IR (JSON)')
    parser.add_argument('--target', choices=[t.value for t in Target], default=Target.C_ABI.value,
                        help='Consumer target (default: c-abi)')
    parser.add_argument('--module', default=None,
                        help='Module name (default: the IR module name)')
    parser.add_argument('--output', default=None,
                        help='Output .rs file (default: gen/<module>_<target>.rs)')
    parser.add_argument('--attr', default='ffi_export',
                        help='Marker attribute name used in diagnostics')
    parser.add_argument('--ignore', action='append', default=[],
                        help='Declaration to skip (repeatable)')
    parser.add_argument('--strict-fields', action='store_true',
                        help='Fail on struct fields that cannot cross the C boundary')
    parser.add_argument('--require-marker', action='store_true',
                        help='Only wrap impl methods carrying the marker attribute')
    parser.add_argument('--edition', choices=EDITIONS, default='2021',
                        help='Rust edition of the target crate (default: 2021)')
    return parser


def main(argv=None) -> int:
    args = build_argument_parser().parse_args(argv)

    ir = IR.load(args.ir)
    config = BindingConfig(
        module_name=args.module or ir.module,
        target=Target(args.target),
        attr_name=args.attr,
        require_method_marker=args.require_marker,
        strict_fields=args.strict_fields,
        edition=args.edition,
    )
    gen = Generator(config)
    gen.ignore(*args.ignore)

    output = args.output
    if output is None:
        suffix = args.target.replace('-', '_')
        output = os.path.join('gen', f'{config.module_name}_{suffix}.rs')

    expansions = gen.write(ir, output)
    failed = [e for e in expansions if not e.ok]

    print(f'\nResults: {len(expansions) - len(failed)} succeeded, {len(failed)} failed')
    return 0 if not failed else 1


if __name__ == '__main__':
    sys.exit(main())
