# -'- coding: utf-8 -'-
"""
Command line interface::

    python -m c2plan9 fma_avx2.s fma_amd64.s -p fma_amd64.go -c -f
"""

import sys
import shutil
import argparse
import subprocess
import logging as log

from . import __version__
from .translator import Options, translate
from .signature import parse_prototypes
from .stubs import go_declarations
from .errors import TranslationError, TranslationFailed


def format_asm(text):
    """Pipe *text* through ``asmfmt`` when it is installed; otherwise return
    it unchanged.
    """
    exe = shutil.which('asmfmt')
    if exe is None:
        log.warning('asmfmt not found; output left unformatted')
        return text
    proc = subprocess.run([exe], input=text.encode('utf-8'), stdout=subprocess.PIPE,
                          stderr=subprocess.PIPE, check=True)
    return proc.stdout.decode('utf-8')


def build_parser():
    ap = argparse.ArgumentParser(prog='c2plan9',
                                 description="Translate compiler-generated x86-64 "
                                             "assembly into Go Plan9 assembly")
    ap.add_argument('input', help="Intel-syntax .s file produced by clang or gcc")
    ap.add_argument('output', help="Plan9 .s file to write")
    ap.add_argument('-p', '--prototypes', metavar='GOFILE',
                    help="Go file declaring the translated functions")
    ap.add_argument('-s', '--strip-comments', action='store_true',
                    help="omit source comments after encoded instructions")
    ap.add_argument('-c', '--compact', action='store_true',
                    help="group encoded bytes into QUAD/LONG/WORD literals")
    ap.add_argument('-d', '--keep-directives', action='store_true',
                    help="pass source directives through as comments")
    ap.add_argument('-f', '--format', action='store_true',
                    help="run asmfmt on the output")
    ap.add_argument('--stubs', metavar='GOFILE',
                    help="write Go declarations for the translated functions")
    ap.add_argument('--package', default='main',
                    help="Go package name used in --stubs output")
    ap.add_argument('--stub-package', default='',
                    help="Go package holding the memcpy/memset helper stubs")
    ap.add_argument('-j', '--jobs', type=int, default=1,
                    help="translate functions on N threads")
    ap.add_argument('-v', '--verbose', action='count', default=0,
                    help="log progress (-vv for every instruction)")
    ap.add_argument('--version', action='version', version='%(prog)s ' + __version__)
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)
    level = {0: log.WARNING, 1: log.INFO}.get(args.verbose, log.DEBUG)
    log.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    with open(args.input) as fh:
        text = fh.read()
    prototypes = None
    if args.prototypes:
        with open(args.prototypes) as fh:
            source = fh.read()
        try:
            prototypes = parse_prototypes(source)
        except TranslationError as exc:
            sys.stderr.write(exc.diagnostic(args.prototypes) + '\n')
            return 1

    opts = Options(strip_comments=args.strip_comments, compact=args.compact,
                   keep_directives=args.keep_directives, prototypes=prototypes,
                   stub_package=args.stub_package, jobs=args.jobs,
                   filename=args.input)
    try:
        result = translate(text, opts)
    except TranslationFailed as exc:
        sys.stderr.write(exc.report() + '\n')
        return 1

    out = result.text
    if args.format:
        out = format_asm(out)
    with open(args.output, 'w') as fh:
        fh.write(out)
    if args.stubs:
        with open(args.stubs, 'w') as fh:
            fh.write(go_declarations(result, args.package))
    for info in result.functions:
        log.info('%s: %d arguments, $%d-%d' % (info.symbol, info.arg_count,
                                               info.frame_size, info.arg_size))
    return 0
