# -'- coding: utf-8 -'-
"""
c2plan9 translates x86-64 assembly written by clang or gcc (Intel syntax,
SystemV calling convention) into Go Plan9 assembly, so that SIMD routines
compiled from C can be called from Go without cgo.

    >>> from c2plan9 import translate
    >>> result = translate(open('fma_avx2.s').read(),
    ...                    prototypes='func _fma(a, b, c, result unsafe.Pointer)')
    >>> open('fma_amd64.s', 'w').write(result.text)

Instructions the Go assembler cannot express are re-encoded by the x86-64
encoder in :mod:`c2plan9.asm` and emitted as data literals.
"""

__version__ = '0.1.0'

from .translator import Options, translate, TranslationResult, FunctionInfo
from .errors import TranslationError, TranslationFailed
