# -'- coding: utf-8 -'-

from pytest import raises

from c2plan9.asm.register import registers, rax, rbx, rbp, rsp, rdi, r12, r13, rip
from c2plan9.asm.pointer import Pointer
from c2plan9.asm.util import hexstr


def modrm(ptr, reg=0):
    rex, code = ptr.modrm_sib(reg)
    return rex, hexstr(code)


def test_pointer():
    p1 = Pointer(rax)
    p2 = Pointer(rax, rbx, 2, 0x10, bits=64)
    p3 = Pointer(rip, disp=8, bits=256, symbol='.LCPI0_0')

    assert p1 == Pointer(base=rax)
    assert p1 != p2
    assert p2.scale == 2
    assert Pointer(rax, rbx).scale == 1
    assert p3.rip_relative
    assert not p2.rip_relative
    assert p2.registers() == [rax, rbx]
    assert p3.registers() == []

    assert str(p1) == '[rax]'
    assert str(p2) == 'qword ptr [rax + 2*rbx + 0x10]'
    assert str(Pointer(rbp, disp=-8)) == '[rbp - 0x8]'
    assert str(p3) == 'ymmword ptr [rip + .LCPI0_0 + 0x8]'

    with raises(ValueError):
        Pointer(rax, rbx, 3)


def test_rebase():
    p = Pointer(rip, disp=4, bits=128, symbol='.LCPI0_1')
    q = p.rebase(rbx, 0x24)
    assert q == Pointer(rbx, disp=0x24, bits=128)
    assert q.symbol is None
    assert not q.rip_relative


def test_modrm_sib():
    # plain base register
    assert modrm(Pointer(rdi)) == (0, '07')
    # rbp and r13 need an explicit zero displacement
    assert modrm(Pointer(rbp)) == (0, '45 00')
    assert modrm(Pointer(r13))[1] == '45 00'
    # rsp and r12 need a SIB byte
    assert modrm(Pointer(rsp, disp=8)) == (0, '44 24 08')
    assert modrm(Pointer(r12))[1] == '04 24'
    # disp8 / disp32 selection
    assert modrm(Pointer(rax, disp=127))[1] == '40 7f'
    assert modrm(Pointer(rax, disp=128))[1] == '80 80 00 00 00'
    assert modrm(Pointer(rax, disp=-128))[1] == '40 80'
    # index without base always carries disp32
    assert modrm(Pointer(None, rax, 4))[1] == '04 85 00 00 00 00'
    # rip-relative
    assert modrm(Pointer(rip, disp=0x10))[1] == '05 10 00 00 00'


def test_modrm_errors():
    with raises(TypeError):
        Pointer(rip, symbol='.LCPI0_0').modrm_sib()
    with raises(TypeError):
        Pointer(registers['eax']).modrm_sib()
    with raises(TypeError):
        Pointer(rax, rsp).modrm_sib()
    with raises(TypeError):
        Pointer(rax, disp=1 << 33).modrm_sib()


def test_encode_modrm():
    from c2plan9.asm.modrm import encode_modrm
    assert encode_modrm(rax, rbx) == (0, b'\xc3')
    assert encode_modrm(2, Pointer(rdi)) == (0, b'\x17')
    assert encode_modrm(r12, r13)[0] & 0b111 == 0b101
    with raises(TypeError):
        encode_modrm(8, rax)
    with raises(TypeError):
        encode_modrm(rax, 5)
    with raises(TypeError):
        encode_modrm(rax, rip)
