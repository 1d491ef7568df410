# -'- coding: utf-8 -'-

from c2plan9 import translate
from c2plan9.stubs import go_declarations
from c2plan9.signature import Signature, Argument, Result
from c2plan9.translator import FunctionInfo

from test_translator import fma_asm, fma_go


def test_declarations():
    result = translate(fma_asm, prototypes=fma_go)
    text = go_declarations(result, 'simd')
    assert text == (
        '// Code generated by c2plan9. DO NOT EDIT.\n'
        '//+build !noasm !appengine\n'
        '\n'
        'package simd\n'
        '\n'
        'import "unsafe"\n'
        '\n'
        '//go:noescape\n'
        'func _fma(a unsafe.Pointer, b unsafe.Pointer, c unsafe.Pointer, '
        'result unsafe.Pointer)\n')


def test_no_unsafe():
    sig = Signature('dot', [Argument('n', 'int')], Result('ret', 'float64'))
    infos = [FunctionInfo('dot', '_dot', 1, 16, 0, sig)]
    text = go_declarations(infos)
    assert 'import' not in text
    assert 'package main\n' in text
    # the declaration uses the Go symbol, not the source name
    assert text.endswith('//go:noescape\nfunc _dot(n int) (ret float64)\n')
