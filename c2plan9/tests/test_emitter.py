# -'- coding: utf-8 -'-

from pytest import raises

from c2plan9.asm.parser import parse_instruction
from c2plan9.source import Label, Directive, Emission, Native
from c2plan9.constpool import ConstantPool, DataBlob
from c2plan9 import emitter


def test_literals():
    code = b'\xc5\xfc\x10\x07'
    assert emitter.literals(code) == ['BYTE $0xc5', 'BYTE $0xfc', 'BYTE $0x10', 'BYTE $0x07']
    assert emitter.literals(code, compact=True) == ['LONG $0x0710fcc5']
    assert emitter.literals(b'\xc4\xe2\x7d\xa8\x0a', compact=True) == [
        'LONG $0xa87de2c4', 'BYTE $0x0a']
    assert emitter.literals(bytes(range(1, 12)), compact=True) == [
        'QUAD $0x0807060504030201', 'WORD $0x0a09', 'BYTE $0x0b']
    assert emitter.literals(b'') == []


def test_labels():
    assert emitter.plan9_label('.LBB0_3') == 'LBB0_3'
    assert emitter.plan9_label('LBB0_3') == 'LBB0_3'


def test_render_items():
    inst = parse_instruction('vmovups ymm0, ymmword ptr [rdi]')
    items = [
        Native('MOVQ a+0(FP), DI'),
        Label('.LBB0_1'),
        Directive('.p2align', '4, 0x90'),
        Emission(inst, b'\xc5\xfc\x10\x07'),
        Native('RET'),
    ]
    lines = emitter.render_items(items, compact=True)
    assert lines[0] == '\tMOVQ a+0(FP), DI'
    assert lines[1] == 'LBB0_1:'
    assert lines[2].startswith('\tLONG $0x0710fcc5 ')
    assert lines[2].endswith('// vmovups ymm0, ymmword ptr [rdi]')
    assert lines[3] == '\tRET'

    lines = emitter.render_items(items, comments=False, keep_directives=True)
    assert lines[2] == '\t// .p2align 4, 0x90'
    assert lines[3] == '\tBYTE $0xc5; BYTE $0xfc; BYTE $0x10; BYTE $0x07'

    with raises(TypeError):
        emitter.render_items([object()])


def test_render_pool():
    pool = ConstantPool()
    assert emitter.render_pool(pool) == []
    pool.require(DataBlob('.LCPI0_0', b'\x00\x00\x80\x3f' * 3, align=4), 4)
    pool.layout()
    assert emitter.render_pool(pool) == [
        'DATA LCDATA<>+0x000(SB)/8, $0x3f8000003f800000',
        'DATA LCDATA<>+0x008(SB)/4, $0x3f800000',
        'GLOBL LCDATA<>(SB), RODATA|NOPTR, $12',
    ]


class Fn(object):
    def __init__(self, symbol, frame_size, arg_size, items):
        self.symbol = symbol
        self.frame_size = frame_size
        self.arg_size = arg_size
        self.items = items


def test_render():
    fns = [Fn('_a', 0, 32, [Native('RET')]), Fn('_b', 64, 16, [Native('RET')])]
    text = emitter.render(fns, ConstantPool())
    lines = text.split('\n')
    assert lines[:4] == emitter.header
    assert 'TEXT ·_a(SB), $0-32' in lines
    assert 'TEXT ·_b(SB), $64-16' in lines
    assert lines.index('TEXT ·_a(SB), $0-32') < lines.index('TEXT ·_b(SB), $64-16')
    assert 'GLOBL' not in text
    assert text.endswith('\tRET\n')
