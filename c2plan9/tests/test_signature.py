# -'- coding: utf-8 -'-

from pytest import raises

from c2plan9.signature import (Signature, Argument, Result, parse_prototypes,
                               parse_params, array_size, INT, FLOAT)
from c2plan9.errors import ArgumentSizeError, ParseError


go_source = """
package main

import "unsafe"

//go:noescape
func _fma(a, b, c, result unsafe.Pointer)

//go:noescape
func _dot(x, y unsafe.Pointer, n int) (ret float64)

func _sum4(p unsafe.Pointer) [4]float64

func _unnamed(unsafe.Pointer, int) int

func notAStub() {
}
"""


def test_parse_prototypes():
    sigs = parse_prototypes(go_source)
    assert list(sigs) == ['_fma', '_dot', '_sum4', '_unnamed', 'notAStub']

    fma = sigs['_fma']
    assert [a.name for a in fma.args] == ['a', 'b', 'c', 'result']
    assert all(a.cls == INT for a in fma.args)
    assert fma.result is None
    assert fma.arg_size == 32

    dot = sigs['_dot']
    assert dot.args[2] == Argument('n', 'int')
    assert dot.result == Result('ret', 'float64')
    assert dot.result.shape == 'float64'
    assert dot.arg_size == 32
    assert dot.ret_offset == 24

    sum4 = sigs['_sum4']
    assert sum4.result.kind == '[4]float64'
    assert sum4.result.shape == 'm256'
    assert sum4.arg_size == 8 + 32

    un = sigs['_unnamed']
    assert [a.kind for a in un.args] == ['unsafe.Pointer', 'int']
    assert un.result.name == 'ret'

    assert sigs['notAStub'].args == []


def test_parse_params():
    assert parse_params('') == []
    assert parse_params('a, b int, x float64') == [('a', 'int'), ('b', 'int'),
                                                   ('x', 'float64')]
    with raises(ValueError):
        parse_params('a int, b')


def test_multiple_results():
    with raises(ArgumentSizeError):
        parse_prototypes('func _f(a int) (x, y int)')


def test_untyped_parameters():
    with raises(ParseError) as exc:
        parse_prototypes('package main\n\nfunc _f(a int, b)\n')
    assert exc.value.function == '_f'
    with raises(ParseError):
        parse_prototypes('func _g(a int) (x int, y)')


def test_classes():
    assert Argument('p', '*float32').cls == INT
    assert Argument('x', 'float64').cls == FLOAT
    assert Argument('x', 'float32').cls is None
    assert Result('r', '[4]float32').shape == 'm128'
    assert Result('r', '[3]float32').shape is None
    assert array_size('[8]int32') == 32
    assert array_size('[]int32') is None


def test_validate():
    sig = Signature('_f', [Argument('x', 'float32')])
    with raises(ArgumentSizeError) as exc:
        sig.validate()
    assert exc.value.construct == 'float32'
    with raises(ArgumentSizeError):
        Signature('_f', [], Result('r', 'int32')).validate()
    good = Signature('_f', [Argument('n', 'uint64')], Result('r', 'uintptr'))
    assert good.validate() is good


def test_discover():
    sig = Signature.discover('_f', 2, 1, 1)
    assert sig.discovered
    assert [a.kind for a in sig.args] == ['unsafe.Pointer', 'unsafe.Pointer',
                                          'float64', 'unsafe.Pointer']
    assert [a.name for a in sig.args] == ['arg1', 'arg2', 'arg3', 'arg4']
    assert sig.arg_size == 32
    assert sig.go_declaration() == ('func _f(arg1 unsafe.Pointer, arg2 unsafe.Pointer, '
                                    'arg3 float64, arg4 unsafe.Pointer)')


def test_go_declaration():
    sig = parse_prototypes('func _dot(x, y unsafe.Pointer) (ret float64)')['_dot']
    assert sig.go_declaration() == ('func _dot(x unsafe.Pointer, y unsafe.Pointer) '
                                    '(ret float64)')


def test_adjacent_declarations():
    sigs = parse_prototypes('func _a(x int)\nfunc _b() int\n')
    assert sigs['_a'].result is None
    assert sigs['_b'].result == Result('ret', 'int')
