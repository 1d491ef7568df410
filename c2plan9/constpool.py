# -'- coding: utf-8 -'-
"""
Constant pool: read-only data referenced through rip-relative operands.

Compilers address floating-point and vector constants with rip-relative
loads (``vmovaps ymm0, ymmword ptr [rip + .LCPI0_0]``). The Plan9 output
cannot carry the original data sections, so every referenced blob is copied
into one pool per output unit, emitted as ``DATA``/``GLOBL`` statements, and
every reference is rewritten to ``[REG + offset]`` where REG holds the
pool address loaded in the function preamble.
"""

import re
import struct
import logging as log
from collections import OrderedDict

from .source import Label, Directive
from .errors import MissingConstantDataError, ParseError


#   Data directives
#----------------------------------------

# integer data directives and their size in bytes
int_directives = {
    '.byte': 1,
    '.short': 2, '.value': 2, '.word': 2, '.2byte': 2, '.hword': 2,
    '.long': 4, '.int': 4, '.4byte': 4,
    '.quad': 8, '.8byte': 8,
}

float_directives = {
    '.float': '<f', '.single': '<f',
    '.double': '<d',
}

string_directives = {
    '.ascii': False,
    '.asciz': True, '.string': True,
}

align_directives = ('.p2align', '.align', '.balign', '.p2alignw', '.p2alignl')


def is_readonly(section):
    """True for sections holding read-only data (.rodata*, .literal*, .const
    and their Mach-O __TEXT counterparts).
    """
    if section is None:
        return False
    if section.startswith('__'):
        segment, _, name = section.partition(',')
        return segment == '__TEXT' and name.startswith(('__literal', '__const', '__cstring'))
    return section.startswith(('.rodata', '.literal', '.const'))


def unescape(s):
    """Decode a GNU as string literal body (without quotes) to bytes.
    """
    out = bytearray()
    i = 0
    simple = {'n': 10, 't': 9, 'r': 13, 'b': 8, 'f': 12, '\\': 92, '"': 34, "'": 39}
    while i < len(s):
        c = s[i]
        if c != '\\':
            out.extend(c.encode('latin-1'))
            i += 1
            continue
        i += 1
        c = s[i]
        if c in simple:
            out.append(simple[c])
            i += 1
        elif c in 'xX':
            m = re.match(r'[0-9a-fA-F]+', s[i+1:])
            out.append(int(m.group(), 16) & 0xff)
            i += 1 + len(m.group())
        elif c in '01234567':
            m = re.match(r'[0-7]{1,3}', s[i:])
            out.append(int(m.group(), 8) & 0xff)
            i += len(m.group())
        else:
            out.extend(c.encode('latin-1'))
            i += 1
    return bytes(out)


def directive_bytes(d):
    """Return the bytes emitted by data directive *d*.

    Raises ValueError for values that are not plain numbers (eg. label
    differences in jump tables).
    """
    name = d.name
    if name in int_directives:
        size = int_directives[name]
        out = b''
        for arg in d.argv:
            val = int(arg, 0) if not re.match(r'-?0[0-7]+$', arg) else int(arg, 8)
            out += (val & ((1 << (8 * size)) - 1)).to_bytes(size, 'little')
        return out
    elif name in float_directives:
        return b''.join(struct.pack(float_directives[name], float(arg)) for arg in d.argv)
    elif name in string_directives:
        out = b''
        for arg in d.argv:
            if not (arg.startswith('"') and arg.endswith('"')):
                raise ValueError('Expected string literal, got %s' % arg)
            out += unescape(arg[1:-1])
            if string_directives[name]:
                out += b'\x00'
        return out
    elif name in ('.zero', '.space', '.skip'):
        argv = d.argv
        fill = int(argv[1], 0) if len(argv) > 1 else 0
        return bytes(bytearray([fill & 0xff]) * int(argv[0], 0))
    raise ValueError('Not a data directive: %s' % name)


def is_data_directive(name):
    return (name in int_directives or name in float_directives or
            name in string_directives or name in ('.zero', '.space', '.skip'))


def alignment(d):
    """Return the byte alignment requested by an alignment directive.
    """
    n = int(d.argv[0], 0)
    if d.name == '.balign':
        return n
    if d.name == '.align' and d.section is not None and not d.section.startswith('__'):
        # ELF x86 .align takes a byte count
        return n
    return 1 << n


def entity_size(section, directive=None):
    """Entity size of a mergeable constant section (the 32 of
    ``.rodata.cst32`` or ``__literal16``), or 1.
    """
    if directive is not None and directive.name == '.section':
        argv = directive.argv
        if len(argv) >= 4 and argv[2].lstrip('@%') == 'progbits':
            try:
                return int(argv[3], 0)
            except ValueError:
                pass
    m = re.search(r'(?:\.cst|__literal)(\d+)', section or '')
    if m is not None:
        return int(m.groups()[0])
    return 1



#   Data blobs and the index of read-only data
#------------------------------------------------

class DataBlob(object):
    """Bytes labelled by *symbol* in a read-only section.
    """
    def __init__(self, symbol, data=b'', align=1, section=None, lineno=None):
        self.symbol = symbol
        self.data = data
        self.align = align
        self.section = section
        self.lineno = lineno
        self.problem = None

    def __len__(self):
        return len(self.data)

    def __repr__(self):
        return "<DataBlob %s: %d bytes align %d>" % (self.symbol, len(self.data), self.align)


class DataIndex(object):
    """Index of labelled blobs in the read-only data sections of one input.

    A blob extends from its label to the next label or section switch;
    labels with no data between them address the same blob.
    """
    def __init__(self, records):
        self.blobs = OrderedDict()
        self.writable = set()
        self._index(records)

    def _index(self, records):
        current = []
        align = 1
        entsize = 1
        for rec in records:
            if isinstance(rec, Directive) and rec.name in ('.section', '.text', '.data',
                                                           '.bss', '.previous',
                                                           '.pushsection', '.popsection'):
                current = []
                align = 1
                entsize = entity_size(rec.section, rec)
                continue
            if not is_readonly(rec.section):
                if isinstance(rec, Label) and not rec.section.startswith(('.text', '__TEXT,__text')):
                    self.writable.add(rec.name)
                continue

            if isinstance(rec, Label):
                blob = DataBlob(rec.name, align=max(align, entsize), section=rec.section,
                                lineno=rec.lineno)
                if current and not any(len(b) for b in current):
                    # alias of the labels just before it
                    blob = current[0]
                else:
                    current = []
                current.append(blob)
                self.blobs[rec.name] = blob
                align = 1
            elif isinstance(rec, Directive):
                if rec.name in align_directives:
                    align = max(align, alignment(rec))
                elif is_data_directive(rec.name):
                    if not current:
                        continue
                    blob = current[0]
                    try:
                        blob.data += directive_bytes(rec)
                    except (ValueError, IndexError, struct.error) as err:
                        blob.problem = '%s (line %d)' % (err, rec.lineno)
            else:
                raise ParseError('Instruction in data section %s' % rec.section,
                                 lineno=rec.lineno, construct=str(rec))
        log.info('Indexed %d read-only data blobs' % len(self.blobs))

    def __contains__(self, symbol):
        return symbol in self.blobs

    def lookup(self, symbol, function=None, lineno=None):
        """Return the DataBlob for *symbol*.

        Raises MissingConstantDataError when the symbol is not in a read-only
        data section or its contents cannot be decoded.
        """
        blob = self.blobs.get(symbol)
        if blob is None:
            if symbol in self.writable:
                msg = "'%s' is not in a read-only data section" % symbol
            else:
                msg = "No data found for symbol '%s'" % symbol
            raise MissingConstantDataError(msg, function=function, lineno=lineno,
                                           construct=symbol)
        if blob.problem is not None:
            raise MissingConstantDataError("Cannot decode data for '%s': %s"
                                           % (symbol, blob.problem), function=function,
                                           lineno=lineno, construct=symbol)
        if len(blob) == 0:
            raise MissingConstantDataError("Symbol '%s' labels no data" % symbol,
                                           function=function, lineno=lineno,
                                           construct=symbol)
        return blob



#   Constant pool
#----------------------------------------

# widest access alignment a pool slot is given
max_align = 32


class ConstantPool(object):
    """Blobs referenced by the functions of one output unit, laid out in
    first-use order.

    Slots are keyed by symbol; byte-identical data under different symbols
    gets separate slots. Each slot is aligned to the larger of the blob's
    declared alignment and the widest access made to it.
    """
    def __init__(self, name='LCDATA'):
        self.name = name
        self.slots = OrderedDict()
        self._align = OrderedDict()
        self._frozen = False

    def require(self, blob, access=1):
        """Register a use of *blob* by an access of *access* bytes.

        Slot order is the order of first use; call this for every reference
        before reading any offset.
        """
        if self._frozen:
            raise RuntimeError("Constant pool layout is already fixed.")
        align = max(blob.align, min(access, max_align), 1)
        if blob.symbol not in self._align:
            self.slots[blob.symbol] = [None, blob]
            self._align[blob.symbol] = align
        else:
            self._align[blob.symbol] = max(self._align[blob.symbol], align)

    def layout(self):
        """Assign offsets to every slot. Offsets increase monotonically.
        """
        offset = 0
        for symbol, slot in self.slots.items():
            align = self._align[symbol]
            offset = (offset + align - 1) // align * align
            slot[0] = offset
            offset += len(slot[1])
        self._size = offset
        self._frozen = True
        log.info('Constant pool %s: %d slots, %d bytes' % (self.name, len(self.slots), self.size))

    @property
    def align(self):
        return max(self._align.values()) if self._align else 1

    @property
    def size(self):
        """Total size, padded to the largest slot alignment.
        """
        if not self._frozen:
            self.layout()
        a = self.align
        return (self._size + a - 1) // a * a

    def __len__(self):
        return len(self.slots)

    def offset(self, symbol):
        if not self._frozen:
            self.layout()
        return self.slots[symbol][0]

    def alignment(self, symbol):
        return self._align[symbol]

    def rebase(self, ptr, reg):
        """Return a Pointer addressing the pool copy of the data *ptr*
        references, relative to the pool base held in *reg*.
        """
        return ptr.rebase(reg, self.offset(ptr.symbol) + ptr.disp)

    def data(self):
        """Return the pool contents, zero-padded between slots and to
        :attr:`size`.
        """
        out = bytearray(self.size)
        for symbol, (offset, blob) in self.slots.items():
            out[offset:offset + len(blob)] = blob.data
        return bytes(out)

    @property
    def footprint(self):
        """Bytes the pool adds to a function's stack frame. The pool is
        static data anchored by symbol, so this is always 0.
        """
        return 0


def access_size(ptr):
    """Bytes read through *ptr*, from its size hint.
    """
    if ptr.bits is None:
        return 1
    return max(ptr.bits // 8, 1)
