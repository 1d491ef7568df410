# -'- coding: utf-8 -'-
"""
Records produced by the assembly parser, and the records that replace
instructions during translation.

Parsed records are never modified once created: a pass that needs a different
instruction (eg. the constant pool rebasing a rip-relative operand) builds a
new one with :meth:`Instruction.replace`, keeping the original source text and
line number for diagnostics and disassembly comments.
"""

import re

from .asm.register import Register
from .asm.pointer import Pointer
from .asm.immediate import Immediate


# conditional jumps and their Plan9 spelling
jumps = {
    'jmp': 'JMP',
    'je': 'JEQ', 'jz': 'JEQ',
    'jne': 'JNE', 'jnz': 'JNE',
    'jb': 'JCS', 'jc': 'JCS', 'jnae': 'JCS',
    'jae': 'JCC', 'jnb': 'JCC', 'jnc': 'JCC',
    'ja': 'JHI', 'jnbe': 'JHI',
    'jbe': 'JLS', 'jna': 'JLS',
    'jl': 'JLT', 'jnge': 'JLT',
    'jge': 'JGE', 'jnl': 'JGE',
    'jle': 'JLE', 'jng': 'JLE',
    'jg': 'JGT', 'jnle': 'JGT',
    'js': 'JMI', 'jns': 'JPL',
    'jo': 'JOS', 'jno': 'JOC',
    'jp': 'JPS', 'jpe': 'JPS',
    'jnp': 'JPC', 'jpo': 'JPC',
}


# compiler-generated local labels on ELF and Mach-O
local_label = re.compile(r"^(\.L|L(BB|CPI|func_end|tmp|\.str)|ltmp)")


class Record(object):
    """Base for everything the parser produces. *section* is the name of the
    section in effect when the record was read.
    """
    lineno = None
    section = None


class Label(Record):
    """Marks a location in the assembly stream.
    """
    def __init__(self, name, lineno=None, section=None):
        self.name = name
        self.lineno = lineno
        self.section = section

    @property
    def is_local(self):
        """True for assembler-local labels (.LBB0_3, LBB0_3 on Mach-O)."""
        return local_label.match(self.name) is not None

    def __eq__(self, x):
        return isinstance(x, Label) and x.name == self.name

    def __ne__(self, x):
        return not self == x

    def __hash__(self):
        return hash(self.name)

    def __repr__(self):
        return "<Label %s>" % self.name

    def __str__(self):
        return self.name + ':'


class Directive(Record):
    """An assembler directive such as ``.p2align 5`` or
    ``.section .rodata.cst32,"aM",@progbits,32``.
    """
    def __init__(self, name, args='', lineno=None, section=None):
        self.name = name
        self.args = args
        self.lineno = lineno
        self.section = section

    @property
    def argv(self):
        """Comma-separated arguments, with quoted strings kept intact.
        """
        argv = []
        cur = ''
        quoted = False
        escape = False
        for c in self.args:
            if escape:
                cur += c
                escape = False
            elif c == '\\' and quoted:
                cur += c
                escape = True
            elif c == '"':
                cur += c
                quoted = not quoted
            elif c == ',' and not quoted:
                argv.append(cur.strip())
                cur = ''
            else:
                cur += c
        if cur.strip() or argv:
            argv.append(cur.strip())
        return argv

    def __repr__(self):
        return "<Directive %s>" % str(self)

    def __str__(self):
        return (self.name + ' ' + self.args).strip()


class Instruction(Record):
    """One parsed machine instruction.

    *operands* is a tuple of Register, Pointer and Immediate objects. *label*
    is the nearest label preceding the instruction, *text* the statement as it
    appeared in the source (used for disassembly comments) and *comment* any
    trailing source comment. *problem* is a TranslationError that rules out
    translating the instruction, found while parsing it.
    """
    def __init__(self, mnemonic, operands=(), prefix=None, comment=None,
                 lineno=None, label=None, text=None, section=None, problem=None):
        self.mnemonic = mnemonic
        self.operands = tuple(operands)
        self.prefix = prefix
        self.comment = comment
        self.lineno = lineno
        self.label = label
        self.text = text
        self.section = section
        self.problem = problem
        for op in self.operands:
            if not isinstance(op, (Register, Pointer, Immediate)):
                raise TypeError("Invalid operand type %s." % type(op))

    def replace(self, **kwds):
        """Return a copy of this instruction with some attributes changed.
        """
        opts = dict(mnemonic=self.mnemonic, operands=self.operands,
                    prefix=self.prefix, comment=self.comment,
                    lineno=self.lineno, label=self.label, text=self.text,
                    section=self.section, problem=self.problem)
        for k in kwds:
            if k not in opts:
                raise TypeError("Invalid keyword argument '%s'." % k)
        opts.update(kwds)
        return Instruction(**opts)

    @property
    def is_jump(self):
        return self.mnemonic in jumps

    @property
    def is_call(self):
        return self.mnemonic == 'call'

    @property
    def is_ret(self):
        return self.mnemonic == 'ret'

    @property
    def target(self):
        """Symbol name of a jump or call target, or None.
        """
        if len(self.operands) == 1 and isinstance(self.operands[0], Immediate):
            return self.operands[0].symbol
        return None

    def pointers(self):
        return [op for op in self.operands if isinstance(op, Pointer)]

    def registers(self):
        """All registers appearing in the instruction, including those used
        to compute memory addresses.
        """
        regs = []
        for op in self.operands:
            if isinstance(op, Register):
                regs.append(op)
            elif isinstance(op, Pointer):
                regs.extend(op.registers())
        return regs

    def __repr__(self):
        return "<Instruction %s>" % str(self)

    def __str__(self):
        if self.text is not None:
            return self.text
        args = ', '.join(map(str, self.operands))
        name = self.mnemonic if self.prefix is None else self.prefix + ' ' + self.mnemonic
        return (name + ' ' + args).strip()


class Emission(object):
    """Raw machine code that replaces *source* in the output.
    """
    def __init__(self, source, code):
        self.source = source
        self.code = bytes(code)

    def __len__(self):
        return len(self.code)

    def __repr__(self):
        return "<Emission %s: %s>" % (self.source, self.code.hex())


class Native(object):
    """A line written directly in the target dialect, eg. ``VZEROUPPER`` or
    ``JNE LBB0_3``. *source* is the instruction it replaces, if any.
    """
    def __init__(self, text, source=None):
        self.text = text
        self.source = source

    def __repr__(self):
        return "<Native %s>" % self.text
