# -'- coding: utf-8 -'-
"""
Parser for Intel-syntax (``.intel_syntax noprefix``) assembly as written by
clang and gcc.

The parser is a single left-to-right pass producing Label, Directive and
Instruction records tagged with their line number and the section in effect.
Mnemonics are not checked here; an unknown mnemonic is reported when the
instruction is encoded.
"""

import re

from . import register
from .register import rip
from .pointer import Pointer
from .immediate import Immediate
from .instruction import instruction_prefixes
from ..source import Label, Directive, Instruction
from ..function import is_text
from ..constpool import is_data_directive
from ..errors import ParseError, UnsupportedInstructionError


# pointer size hints
size_hints = {
    'byte': 8,
    'word': 16,
    'dword': 32,
    'qword': 64,
    'tbyte': 80,
    'xmmword': 128,
    'oword': 128,
    'ymmword': 256,
    'yword': 256,
    'zmmword': 512,
}

_label_re = re.compile(r'\s*([A-Za-z_.$][\w.$@]*)\s*:(?!:)')
_mnem_re = re.compile(r'([a-zA-Z][a-zA-Z0-9]*)(\s+(.*))?$')
_size_re = re.compile(r'(%s)\s+(ptr\s+)?(.*)$' % '|'.join(size_hints), re.IGNORECASE)
_symbol_re = re.compile(r'[A-Za-z_.$][\w.$@]*$')
_number_re = re.compile(r'[+-]?(0[xX][0-9a-fA-F]+|[0-9]+)$')
_gcc_mem_re = re.compile(r'([^\[]+)\[(.*)\]$')

# name prefixes of the directives compilers write around code; they are
# recorded and left out of the output
boilerplate_directives = (
    '.cfi_', '.file', '.ident', '.globl', '.global', '.local', '.weak',
    '.hidden', '.protected', '.internal', '.private_extern', '.alt_entry',
    '.no_dead_strip', '.type', '.size', '.p2align', '.align', '.balign',
    '.section', '.text', '.data', '.bss', '.pushsection', '.popsection',
    '.previous', '.addrsig', '.intel_syntax', '.loc', '.build_version',
    '.macosx_version_min', '.subsections_via_symbols', '.end', '.set',
    '.comm', '.lcomm', '.linker_option', '.literal', '.const', '.cstring',
    '.zerofill', '.def', '.scl', '.seh_',
)


def parse_asm(asm):
    """Parse assembly text and return a list of Label, Directive and
    Instruction records.

    Raises ParseError naming the line and the offending token for anything
    that cannot be decoded.
    """
    records = []
    section = '.text'
    previous = None
    stack = []
    label = None

    for i, line in enumerate(asm.split('\n')):
        lineno = i + 1
        origline = line
        line, comment = strip_comment(line)
        line = line.strip()
        if line == '':
            continue

        # Split line into "label: [label: ...] statement"
        while True:
            m = _label_re.match(line)
            if m is None:
                break
            label = m.groups()[0]
            records.append(Label(label, lineno=lineno, section=section))
            line = line[m.end():].strip()

        if line == '':
            continue

        if line.startswith('.'):
            name, args = re.match(r'(\.\S+)\s*(.*)$', line).groups()
            d = Directive(name, args.strip(), lineno=lineno, section=section)

            # track the current section
            if name in ('.text', '.data', '.bss'):
                previous, section = section, name
            elif name == '.section':
                previous, section = section, section_name(d)
            elif name == '.pushsection':
                stack.append(section)
                previous, section = section, section_name(d)
            elif name == '.popsection':
                if not stack:
                    raise ParseError('.popsection without .pushsection', lineno=lineno,
                                     construct=origline.strip())
                previous, section = section, stack.pop()
            elif name == '.previous' and previous is not None:
                previous, section = section, previous
            d.section = section
            if (is_text(section) and not name.startswith(boilerplate_directives) and
                    not is_data_directive(name)):
                raise ParseError('Unknown directive %s in text section %s' % (name, section),
                                 lineno=lineno, construct=name)
            records.append(d)
            continue

        inst = parse_instruction(line, lineno)
        inst.comment = comment
        inst.label = label
        inst.section = section
        records.append(inst)

    return records


def strip_comment(line):
    """Split *line* into (statement, comment) at the first ``#`` that is not
    inside a string literal.
    """
    quoted = False
    escape = False
    for j, c in enumerate(line):
        if escape:
            escape = False
        elif c == '\\' and quoted:
            escape = True
        elif c == '"':
            quoted = not quoted
        elif c == '#' and not quoted:
            return line[:j], line[j+1:].strip() or None
    return line, None


def section_name(directive):
    """Return the name of the section selected by a ``.section`` directive.

    Mach-O sections are named by segment and section (``__TEXT,__literal16``).
    """
    argv = directive.argv
    if not argv:
        raise ParseError('Missing section name', lineno=directive.lineno,
                         construct=str(directive))
    name = argv[0].strip('"')
    if name.startswith('__') and len(argv) > 1:
        name = name + ',' + argv[1]
    return name


def parse_instruction(line, lineno=None):
    """Parse one instruction statement (no label, no comment).

    An operand that is well formed but cannot be translated (a gather's
    vector-indexed address) is left out, and the error is kept in the
    Instruction's *problem* so only the enclosing function fails.
    """
    m = _mnem_re.match(line)
    if m is None:
        raise ParseError('Expected instruction mnemonic: "%s"' % line,
                         lineno=lineno, construct=line)
    mnem, _, ops = m.groups()
    mnem = mnem.lower()
    prefix = None
    if mnem in instruction_prefixes and ops:
        prefix = mnem
        m = _mnem_re.match(ops.strip())
        if m is None:
            raise ParseError('Expected instruction mnemonic after prefix: "%s"'
                             % line, lineno=lineno, construct=ops)
        mnem, _, ops = m.groups()
        mnem = mnem.lower()

    operands = []
    problem = None
    if ops is not None and ops.strip() != '':
        for op in split_operands(ops, lineno):
            try:
                operands.append(parse_operand(op, lineno))
            except UnsupportedInstructionError as err:
                problem = err

    text = ' '.join(line.split())
    return Instruction(mnem, operands, prefix=prefix, lineno=lineno, text=text,
                       problem=problem)


def split_operands(ops, lineno=None):
    """Split an operand list on commas that are not inside brackets.
    """
    parts = []
    depth = 0
    cur = ''
    for c in ops:
        if c == '[':
            depth += 1
        elif c == ']':
            depth -= 1
        if c == ',' and depth == 0:
            parts.append(cur.strip())
            cur = ''
        else:
            cur += c
    parts.append(cur.strip())
    for p in parts:
        if p == '':
            raise ParseError('Empty operand in "%s"' % ops, lineno=lineno, construct=ops)
    return parts


def parse_operand(op, lineno=None):
    """Decode one operand into a Register, Immediate or Pointer.
    """
    bits = None
    m = _size_re.match(op)
    if m is not None:
        hint, _, op = m.groups()
        bits = size_hints[hint.lower()]
        op = op.strip()

    if op.upper().startswith('OFFSET'):
        raise ParseError('Absolute address "%s" in position-independent code' % op,
                         lineno=lineno, construct=op)
    if re.match(r'[a-z]s:', op, re.IGNORECASE):
        raise ParseError('Segment override is not supported: "%s"' % op,
                         lineno=lineno, construct=op)

    if op.endswith(']'):
        return parse_pointer(op, bits, lineno)
    elif bits is not None:
        raise ParseError('Size hint without memory operand: "%s"' % op,
                         lineno=lineno, construct=op)

    reg = register.get(op)
    if reg is not None:
        if reg is rip:
            raise ParseError('rip can only be used to address memory', lineno=lineno,
                             construct=op)
        return reg
    if _number_re.match(op):
        return Immediate(parse_number(op))
    if _symbol_re.match(op):
        return Immediate(symbol=op)
    raise ParseError('Cannot parse operand "%s"' % op, lineno=lineno, construct=op)


def parse_number(s):
    """Convert a decimal, hexadecimal or (leading zero) octal literal.
    """
    digits = s.lstrip('+-')
    if len(digits) > 1 and digits[0] == '0' and digits[1] not in 'xX':
        val = int(digits, 8)
    else:
        val = int(digits, 0)
    return -val if s.startswith('-') else val


def parse_pointer(op, bits=None, lineno=None):
    """Decode a memory operand::

        [rdi + 4*rax + 32]
        [rip + .LCPI0_0]
        .LCPI0_0[rip]      (gcc)
        .LC3+8[rip]        (gcc)
    """
    outer = ''
    if op.startswith('['):
        inner = op[1:-1]
    else:
        m = _gcc_mem_re.match(op)
        if m is None:
            raise ParseError('Cannot parse memory operand "%s"' % op, lineno=lineno,
                             construct=op)
        outer, inner = m.groups()
    if outer and outer[0] not in '+-':
        outer = '+' + outer
    expr = inner + outer

    base = None
    index = None
    scale = None
    disp = 0
    symbol = None
    for sign, term in re.findall(r'([+-]?)\s*([^+-]+)', expr.replace(' ', '')):
        if '*' in term:
            a, _, b = term.partition('*')
            if register.get(a) is not None and _number_re.match(b):
                reg, n = register.get(a), parse_number(b)
            elif register.get(b) is not None and _number_re.match(a):
                reg, n = register.get(b), parse_number(a)
            else:
                raise ParseError('Cannot parse scaled index "%s"' % term, lineno=lineno,
                                 construct=op)
            if index is not None or sign == '-':
                raise ParseError('Invalid index in "%s"' % op, lineno=lineno, construct=op)
            index, scale = reg, n
            continue

        reg = register.get(term)
        if reg is not None:
            if sign == '-':
                raise ParseError('Cannot subtract register in "%s"' % op, lineno=lineno,
                                 construct=op)
            if base is None:
                base = reg
            elif index is None:
                index, scale = reg, 1
            else:
                raise ParseError('Too many registers in "%s"' % op, lineno=lineno,
                                 construct=op)
        elif _number_re.match(term):
            val = parse_number(term)
            disp += -val if sign == '-' else val
        elif _symbol_re.match(term):
            if symbol is not None or sign == '-':
                raise ParseError('Cannot parse symbol expression in "%s"' % op,
                                 lineno=lineno, construct=op)
            symbol = term
        else:
            raise ParseError('Cannot parse memory operand "%s"' % op, lineno=lineno,
                             construct=term)

    if symbol is not None and base is not rip:
        raise ParseError('Absolute reference to "%s"; input must be '
                         'position-independent' % symbol, lineno=lineno, construct=op)
    if rip in (base, index) and index is not None:
        raise ParseError('Cannot index a rip-relative address: "%s"' % op,
                         lineno=lineno, construct=op)
    if index is not None and index.kind in ('xmm', 'ymm'):
        raise UnsupportedInstructionError('Vector-indexed memory operand "%s" (gather or '
                                          'scatter) is not supported' % op,
                                          lineno=lineno, construct=op)
    for reg in (base, index):
        if reg is not None and reg is not rip and (reg.kind != 'gp' or reg.bits != 64):
            raise ParseError('Only 64-bit general-purpose registers may address '
                             'memory: "%s"' % op, lineno=lineno, construct=reg.name)

    try:
        return Pointer(base=base, index=index, scale=scale, disp=disp, bits=bits,
                       symbol=symbol)
    except ValueError as err:
        raise ParseError(str(err), lineno=lineno, construct=op)
