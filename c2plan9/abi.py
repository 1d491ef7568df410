# -'- coding: utf-8 -'-
"""
ABI translator: bridges the Go ABI0 stack calling convention and the
SystemV AMD64 register convention the compiled body expects.

Go passes every argument in an 8-byte slot above the return address and
reads the result from the slot that follows them; the body expects its
arguments in rdi, rsi, ... / xmm0, xmm1, ... and a frame pointer set up by
``push rbp; mov rbp, rsp``. The preamble emitted here loads the registers,
builds an aligned stand-in for that frame inside the Go frame, and the
epilogue undoes it::

    TEXT ·_f(SB), $F-argsize
        MOVQ a+0(FP), DI            <- register arguments
        MOVQ SP, BP                 <- frame case only
        ADDQ $(F-16-8K), BP
        ANDQ $-A, BP
        MOVQ SP, 0(BP)              <- saved Go stack pointer
        MOVQ x+56(FP), AX           <- spilled arguments
        MOVQ AX, 16(BP)
        MOVQ BP, SP
        LEAQ LCDATA<>(SB), BX       <- constant pool anchor
        ...body...
        MOVQ 0(BP), SP
        MOVQ AX, ret+64(FP)
        RET
"""

import re
import logging as log

from .asm.register import Register, registers, argi, argf, rax, rcx, rdx, rsi, rdi
from .asm.pointer import Pointer
from .asm.instructions import lookup
from .signature import Signature, INT, FLOAT
from .errors import (ArgumentSizeError, AlignmentError, RegisterAllocationError,
                     UnsupportedInstructionError)


#   Register access analysis
#----------------------------------------

# instructions that clear their destination when both sources are the same
zero_idioms = ('xor', 'sub', 'pxor', 'xorps', 'xorpd', 'psubb', 'psubw', 'psubd',
               'psubq', 'vxorps', 'vxorpd', 'vpxor', 'vpsubb', 'vpsubw', 'vpsubd',
               'vpsubq')

# registers a helper call may overwrite
caller_saved = ([rax, rcx, rdx, rsi, rdi] +
                [registers['r%d' % i] for i in range(8, 12)] +
                [registers['ymm%d' % i] for i in range(16)])

# sub-register of a gp family by size, eg. ('rax', 32) -> eax
_aliases = dict(((r.family, r.bits), r) for r in registers.values()
                if r.kind == 'gp' and not r.high_byte)

_role_re = re.compile(r'\((r|w|r,w)\)')


def alias(reg, bits):
    return _aliases[(reg.family, bits)]


def operand_roles(inst):
    """Return a list of (role, use_sig) pairs, one per operand of *inst*.

    *role* is 'r', 'w' or 'rw' as declared by the encoding table for the
    selected mode. Mnemonics the table does not know are assumed to follow
    the common ``dst = dst OP src`` shape.
    """
    ops = inst.operands
    default = [('rw', None)] + [('r', None)] * (len(ops) - 1)
    cls = lookup(inst.mnemonic)
    if cls is None:
        return default[:len(ops)]
    try:
        enc = cls(*ops, prefix=inst.prefix)
        mode = enc.mode
        use_sig = enc.use_sig
    except TypeError:
        return default[:len(ops)]
    encs = cls.operand_enc[mode[1]] if mode[1] is not None else []
    roles = []
    for i in range(len(ops)):
        role = 'r'
        if i < len(encs) and encs[i] is not None:
            m = _role_re.search(encs[i])
            if m is not None:
                role = m.groups()[0].replace(',', '')
        roles.append((role, use_sig[i]))
    return roles


def access(inst):
    """Return (reads, writes, narrow) for *inst*.

    *reads* and *writes* are lists of registers in operand order, including
    registers used implicitly (rax/rdx of mul and div, rsi/rdi of string
    moves, the argument registers of a helper call). Address registers of
    memory operands are reads. *narrow* is the set of vector registers read
    as a 32-bit scalar.
    """
    ops = inst.operands
    mnem = inst.mnemonic
    reads = []
    writes = []
    narrow = set()

    for op in ops:
        if isinstance(op, Pointer):
            reads.extend(op.registers())

    if inst.is_call:
        reads.extend(argi[:3])
        writes.extend(caller_saved)
        return reads, writes, narrow
    if inst.is_jump or inst.is_ret:
        return reads, writes, narrow

    if (mnem in zero_idioms and len(ops) >= 2 and isinstance(ops[-1], Register) and
            ops[-1] == ops[-2]):
        return reads, [ops[0]], narrow

    for op, (role, use_sig) in zip(ops, operand_roles(inst)):
        if not isinstance(op, Register):
            continue
        if op.name == 'cl' and use_sig == 'cl':
            # shift count: only the low bits matter
            reads.append(registers['rcx'])
            continue
        if 'r' in role:
            reads.append(op)
            if op.is_vector and (mnem.endswith('ss') or
                                 (use_sig is not None and use_sig.endswith('/m32'))):
                narrow.add(op)
        if 'w' in role:
            writes.append(op)

    ir, iw = implicit_access(inst)
    return reads + ir, writes + iw, narrow


def implicit_access(inst):
    """Registers read and written by *inst* that do not appear among its
    operands.
    """
    mnem = inst.mnemonic
    ops = inst.operands
    if mnem == 'cqo':
        return [rax], [rdx]
    if mnem == 'cdq':
        return [alias(rax, 32)], [alias(rdx, 32)]
    if mnem == 'cdqe':
        return [alias(rax, 32)], [rax]
    if mnem == 'cwde':
        return [alias(rax, 16)], [alias(rax, 32)]
    if mnem in ('mul', 'div', 'idiv') or (mnem == 'imul' and len(ops) == 1):
        bits = ops[0].bits if ops and ops[0].bits else 64
        if bits == 8:
            acc = [alias(rax, 16)] if mnem in ('div', 'idiv') else [alias(rax, 8)]
            return acc, [alias(rax, 16)]
        acc = [alias(rax, bits)]
        hi = [alias(rdx, bits)]
        if mnem in ('div', 'idiv'):
            return acc + hi, acc + hi
        return acc, acc + hi
    reads = []
    writes = []
    if mnem.startswith('movs') and not ops:
        reads += [rsi, rdi]
        writes += [rsi, rdi]
    elif mnem.startswith('stos') and not ops:
        bits = {'b': 8, 'w': 16, 'd': 32, 'q': 64}[mnem[-1]]
        reads += [rdi, alias(rax, bits)]
        writes += [rdi]
    if inst.prefix is not None and inst.prefix.startswith('rep'):
        reads.append(rcx)
        writes.append(rcx)
    return reads, writes



#   Argument discovery
#----------------------------------------

def first_accesses(instructions):
    """Return a dict mapping register family to (kind, register, instruction,
    narrow) for the first access of each family, where kind is 'r' or 'w'
    and narrow is True for a vector register read as a float32 scalar.

    Instructions are scanned in source order; reads of an instruction happen
    before its writes.
    """
    first = {}
    for inst in instructions:
        reads, writes, narrow = access(inst)
        for reg in reads:
            if reg.family not in first:
                first[reg.family] = ('r', reg, inst, reg in narrow)
        for reg in writes:
            if reg.family not in first:
                first[reg.family] = ('w', reg, inst, False)
    return first


def stack_argument_slots(fn):
    """Number of incoming stack argument slots read through ``[rbp+16+8k]``.

    Raises ArgumentSizeError for a read narrower than 64 bits or one that does
    not start on a slot boundary.
    """
    nstack = 0
    for inst in fn.instructions():
        for ptr in inst.pointers():
            if ptr.base is None or ptr.base.family != 'rbp' or ptr.index is not None:
                continue
            if ptr.disp < 16:
                continue
            off = ptr.disp - 16
            if inst.mnemonic != 'lea' and (off % 8 or (ptr.bits is not None and ptr.bits < 64)):
                raise ArgumentSizeError("Stack argument read %s is narrower than 64 bits"
                                        % ptr, function=fn.name, lineno=inst.lineno,
                                        construct=str(inst))
            size = max((ptr.bits or 64) // 8, 8)
            nstack = max(nstack, (off + size + 7) // 8)
    return nstack


def discover_signature(fn, name=None):
    """Derive the arguments of *fn* from the argument registers its body
    reads before writing.

    An argument register whose first access is a read is an argument, and so
    are the registers before it in its class. Raises ArgumentSizeError for an
    argument first read through a sub-64-bit alias or as a float32 scalar.
    """
    name = name or fn.name
    first = first_accesses(fn.instructions())

    def count(regs, kind):
        n = 0
        for i, reg in enumerate(regs):
            info = first.get(reg.family)
            if info is None or info[0] != 'r':
                continue
            used, sub, inst, narrow = info
            if kind == INT and sub.bits != 64:
                raise ArgumentSizeError("Argument register %s is first read as %s; only "
                                        "64-bit arguments are supported"
                                        % (reg.name, sub.name), function=name,
                                        lineno=inst.lineno, construct=str(inst))
            if kind == FLOAT and narrow:
                raise ArgumentSizeError("Argument register %s is first read as a float32 "
                                        "scalar; only float64 arguments are supported"
                                        % reg.name, function=name, lineno=inst.lineno,
                                        construct=str(inst))
            n = i + 1
        return n

    nint = count(argi, INT)
    nfloat = count(argf, FLOAT)
    nstack = stack_argument_slots(fn)
    if nstack:
        # stack arguments are only used once the integer registers run out
        nint = len(argi)
    sig = Signature.discover(name, nint, nfloat, nstack)
    log.info('Discovered %s: %d integer, %d vector, %d stack arguments'
             % (name, nint, nfloat, nstack))
    return sig


def resolve_signature(fn, symbol, prototypes=None):
    """Return the validated Signature for *fn*, from *prototypes* (a dict
    keyed by Go function name) when it declares *symbol* or the function's
    own name, or by discovery otherwise.
    """
    prototypes = prototypes or {}
    sig = prototypes.get(symbol, prototypes.get(fn.name))
    if sig is None:
        sig = discover_signature(fn, symbol)
    else:
        stack_argument_slots(fn)
    return sig.validate()


class ArgumentSlot(object):
    """Where one Go argument goes: the SystemV *register* or, for arguments
    beyond the register limit of their class, spill slot *spill*.
    *offset* is the argument's offset in the Go argument frame.
    """
    def __init__(self, arg, offset, register=None, spill=None):
        self.arg = arg
        self.offset = offset
        self.register = register
        self.spill = spill

    @property
    def fp(self):
        return '%s+%d(FP)' % (self.arg.name, self.offset)

    def __repr__(self):
        where = self.register.name if self.register is not None else 'spill %d' % self.spill
        return "<ArgumentSlot %s -> %s>" % (self.fp, where)


def assign_arguments(sig):
    """Return an ArgumentSlot for every argument of *sig*, in declaration
    order. Integer and vector registers are counted independently; spill
    slots are numbered in declaration order.
    """
    slots = []
    nint = nfloat = nspill = 0
    for i, arg in enumerate(sig.args):
        if arg.cls == INT and nint < len(argi):
            slots.append(ArgumentSlot(arg, 8 * i, register=argi[nint]))
            nint += 1
        elif arg.cls == FLOAT and nfloat < len(argf):
            slots.append(ArgumentSlot(arg, 8 * i, register=argf[nfloat]))
            nfloat += 1
        else:
            slots.append(ArgumentSlot(arg, 8 * i, spill=nspill))
            nspill += 1
    return slots



#   Frame layout
#----------------------------------------

# vector moves that fault on a misaligned memory operand
aligned_moves = ('movaps', 'movapd', 'movdqa', 'movntps', 'movntpd', 'movntdq',
                 'movntdqa', 'vmovaps', 'vmovapd', 'vmovdqa', 'vmovntps',
                 'vmovntpd', 'vmovntdq', 'vmovntdqa')

# legacy SSE instructions whose 128-bit memory operand may be unaligned
unaligned_sse = ('movups', 'movupd', 'movdqu', 'lddqu', 'movss', 'movsd', 'movd',
                 'movq', 'movhps', 'movlps', 'movhpd', 'movlpd')


def required_alignment(inst, ptr):
    """Alignment in bytes that *inst* demands of memory operand *ptr*, or 0.
    """
    mnem = inst.mnemonic
    if mnem in aligned_moves:
        bits = ptr.bits
        if bits is None:
            bits = max([op.bits for op in inst.operands if isinstance(op, Register) and
                        op.is_vector] or [128])
        return bits // 8
    if not mnem.startswith('v') and ptr.bits == 128 and mnem not in unaligned_sse:
        return 16
    return 0


def is_stack_pointer(ptr):
    return ptr.base is not None and ptr.base.family in ('rsp', 'rbp')


def stack_alignment(fn):
    """Return the largest alignment required by a vector access to the stack
    of *fn* (at least 16).

    Raises AlignmentError for an access that cannot be aligned under the frame
    layout: a displacement that is not a multiple of the alignment, or an
    rsp-relative access whose offset from the frame base is not a multiple of
    the alignment.
    """
    align = 16
    for inst in fn.instructions():
        for ptr in inst.pointers():
            if not is_stack_pointer(ptr):
                continue
            req = required_alignment(inst, ptr)
            if not req:
                continue
            align = max(align, req)
            ok = ptr.index is None and ptr.disp % req == 0
            if ok and ptr.base.family == 'rsp':
                if fn.realign >= req:
                    ok = fn.locals % req == 0
                else:
                    ok = not fn.realign and (fn.locals + 8 * fn.pushes) % req == 0
            if not ok:
                raise AlignmentError("%d-byte aligned access %s cannot be aligned in a "
                                     "frame with %d bytes of locals" % (req, ptr, fn.locals),
                                     function=fn.name, lineno=inst.lineno,
                                     construct=str(inst))
    return align


def needs_frame(fn, spills=0, call_reserve=0):
    """True when the body touches the stack: locals, spilled arguments,
    pushes, calls, or any use of rsp or rbp.
    """
    if fn.locals or spills or call_reserve or fn.realign:
        return True
    for inst in fn.instructions():
        if inst.mnemonic in ('push', 'pop') or inst.is_call:
            return True
        for reg in inst.registers():
            if reg.family in ('rsp', 'rbp'):
                return True
    return False


class FrameLayout(object):
    """Size of the Go frame that hosts the SystemV stack of one function.

    The frame holds, from the top: *spills* incoming stack arguments above
    the saved-rbp and return-address slots, then the body's own stack (its
    pushes, alignment padding and *locals*), then *call_reserve* bytes for
    helper calls, plus slack so the frame base can be aligned to *align*.
    """
    def __init__(self, locals=0, spills=0, pushes=0, call_reserve=0, align=16,
                 realign=0, framed=True):
        self.locals = locals
        self.spills = spills
        self.pushes = pushes
        self.call_reserve = call_reserve
        self.align = align
        self.realign = realign
        self.framed = framed

    @property
    def realign_pad(self):
        return self.realign - 8 if self.realign else 0

    @property
    def size(self):
        if not self.framed:
            return 0
        a = self.align
        raw = (16 + 8 * self.spills + self.locals + 8 * self.pushes +
               self.call_reserve + (a - 8) + self.realign_pad)
        return (raw + a - 1) // a * a

    @property
    def base_offset(self):
        """Offset from the Go SP at which the aligned frame base is
        searched.
        """
        return self.size - 16 - 8 * self.spills

    def __repr__(self):
        return ("<FrameLayout %d bytes: locals=%d spills=%d pushes=%d align=%d>"
                % (self.size, self.locals, self.spills, self.pushes, self.align))


def plan_frame(fn, slots, call_reserve=0):
    """Compute the FrameLayout of *fn* given its argument *slots*.

    Raises AlignmentError when the local stack requirement is not a multiple
    of 8 or a vector stack access cannot be aligned, and
    UnsupportedInstructionError when the body moves rsp by an amount only
    known at run time.
    """
    dyn = fn.dynamic_stack
    if dyn is not None:
        raise UnsupportedInstructionError("Stack pointer adjusted by a non-constant "
                                          "amount; Go frames have a fixed size",
                                          function=fn.name, lineno=dyn.lineno,
                                          construct=str(dyn))
    if fn.locals % 8:
        raise AlignmentError("Local stack size %d is not a multiple of 8" % fn.locals,
                             function=fn.name, lineno=fn.lineno,
                             construct='sub rsp, %d' % fn.locals)
    spills = len([s for s in slots if s.register is None])
    align = max(stack_alignment(fn), fn.realign)
    pushes = len([i for i in fn.instructions() if i.mnemonic == 'push'])
    framed = needs_frame(fn, spills, call_reserve)
    layout = FrameLayout(locals=fn.locals, spills=spills, pushes=pushes,
                         call_reserve=call_reserve, align=align, realign=fn.realign,
                         framed=framed)
    log.info('Frame of %s: %r' % (fn.name, layout))
    return layout



#   Constant pool base register
#----------------------------------------

# callee-saved registers first, then caller-saved ones no argument uses
pool_candidates = ('rbx', 'r12', 'r13', 'r14', 'r15', 'r11', 'r10')


def pool_register(fn):
    """Return a 64-bit register that *fn* never references.

    Raises RegisterAllocationError when every candidate is in use.
    """
    used = set()
    for inst in fn.instructions():
        reads, writes, narrow = access(inst)
        for reg in inst.registers() + reads + writes:
            used.add(reg.family)
    for name in pool_candidates:
        if name not in used:
            return registers[name]
    raise RegisterAllocationError("No free register to hold the constant pool address "
                                  "(all of %s are used)" % ', '.join(pool_candidates),
                                  function=fn.name, lineno=fn.lineno,
                                  construct=fn.label)



#   Plan9 preamble and epilogue
#----------------------------------------

def go_register(reg):
    """Plan9 name of a register: rdi -> DI, r8 -> R8, xmm3 -> X3, ymm3 -> Y3.
    """
    name = reg.name
    if reg.kind == 'xmm':
        return 'X' + name[3:]
    if reg.kind == 'ymm':
        return 'Y' + name[3:]
    if re.match(r'r\d+$', name):
        return name.upper()
    if reg.bits == 64:
        return name[1:].upper()
    raise TypeError("Register %s has no Plan9 name." % name)


def load_pool(pool_name, reg):
    return 'LEAQ %s<>(SB), %s' % (pool_name, go_register(reg))


def preamble(slots, layout, pool_name=None, pool_reg=None):
    """Plan9 lines that move the Go arguments into place and set up the
    frame.
    """
    lines = []
    for slot in slots:
        if slot.register is None:
            continue
        if slot.register.is_vector:
            lines.append('MOVSD %s, %s' % (slot.fp, go_register(slot.register)))
        else:
            lines.append('MOVQ %s, %s' % (slot.fp, go_register(slot.register)))
    if layout.framed:
        lines += [
            'MOVQ SP, BP',
            'ADDQ $%d, BP' % layout.base_offset,
            'ANDQ $-%d, BP' % layout.align,
            'MOVQ SP, 0(BP)',
        ]
        for slot in slots:
            if slot.register is None:
                lines.append('MOVQ %s, AX' % slot.fp)
                lines.append('MOVQ AX, %d(BP)' % (16 + 8 * slot.spill))
        lines.append('MOVQ BP, SP')
    elif [s for s in slots if s.register is None]:
        raise RuntimeError("Spilled arguments require a frame.")
    if pool_reg is not None:
        lines.append(load_pool(pool_name, pool_reg))
    return lines


# result shape -> store instruction and source register
result_stores = {
    'int': ('MOVQ', 'AX'),
    'float64': ('MOVSD', 'X0'),
    'm128': ('MOVUPS', 'X0'),
    'm256': ('VMOVDQU', 'Y0'),
}


def epilogue(sig, layout):
    """Plan9 lines that replace one ``pop rbp; ret`` return point.
    """
    lines = []
    if layout.framed:
        lines.append('MOVQ 0(BP), SP')
    if sig.result is not None:
        op, reg = result_stores[sig.result.shape]
        lines.append('%s %s, %s+%d(FP)' % (op, reg, sig.result.name, sig.ret_offset))
    lines.append('RET')
    return lines
