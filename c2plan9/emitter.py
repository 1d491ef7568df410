# -'- coding: utf-8 -'-
"""
Plan9 text emission.

Encoded instructions are written as data literals in the instruction
stream, each followed by the source statement it came from::

    TEXT ·_fma(SB), $0-32
        MOVQ a+0(FP), DI
        ...
        LONG $0x0710fcc5                     // vmovups ymm0, ymmword ptr [rdi]
        BYTE $0xc4; BYTE $0xe2; BYTE $0x75   // vfmadd213ps ymm0, ymm1, ymm2
        ...
        VZEROUPPER
        RET
"""

from .source import Label, Directive, Emission, Native


header = [
    '// Code generated by c2plan9. DO NOT EDIT.',
    '//+build !noasm !appengine',
    '',
    '#include "textflag.h"',
]

# literal widths used when compacting, widest first
literal_widths = ((8, 'QUAD'), (4, 'LONG'), (2, 'WORD'), (1, 'BYTE'))


def literals(code, compact=False):
    """Return the Plan9 data literals that reproduce *code*.

    Without *compact* every byte is a ``BYTE``; with it the bytes are greedily
    grouped into little-endian ``QUAD``/``LONG``/``WORD`` values.
    """
    code = bytes(code)
    out = []
    i = 0
    while i < len(code):
        for width, name in literal_widths:
            if width == 1 or (compact and len(code) - i >= width):
                chunk = code[i:i + width]
                out.append('%s $0x%0*x' % (name, 2 * width, int.from_bytes(chunk, 'little')))
                i += width
                break
    return out


def plan9_label(name):
    """Plan9 spelling of an assembler-local label: ``.LBB0_3`` -> ``LBB0_3``.
    """
    return name.lstrip('.')


def code_line(emission, compact=False, comments=True):
    text = '; '.join(literals(emission.code, compact))
    if comments and emission.source is not None:
        text = '%-40s // %s' % (text, emission.source)
    return text


def render_items(items, compact=False, comments=True, keep_directives=False):
    """Render the body of one function: Labels at column 0, everything else
    indented by a tab.
    """
    lines = []
    for item in items:
        if isinstance(item, Label):
            lines.append('%s:' % plan9_label(item.name))
        elif isinstance(item, Emission):
            lines.append('\t' + code_line(item, compact, comments))
        elif isinstance(item, Native):
            lines.append('\t' + item.text)
        elif isinstance(item, Directive):
            if keep_directives:
                lines.append('\t// ' + str(item))
        else:
            raise TypeError("Cannot render %r" % item)
    return lines


def text_line(symbol, frame_size, arg_size):
    return 'TEXT ·%s(SB), $%d-%d' % (symbol, frame_size, arg_size)


def render_pool(pool):
    """``DATA``/``GLOBL`` statements for the constant pool, or an empty list
    when it holds nothing.
    """
    if len(pool) == 0:
        return []
    data = pool.data()
    lines = []
    i = 0
    while i < len(data):
        for width, name in literal_widths:
            if i % width == 0 and len(data) - i >= width:
                val = int.from_bytes(data[i:i + width], 'little')
                lines.append('DATA %s<>+0x%03x(SB)/%d, $0x%0*x'
                             % (pool.name, i, width, 2 * width, val))
                i += width
                break
    lines.append('GLOBL %s<>(SB), RODATA|NOPTR, $%d' % (pool.name, len(data)))
    return lines


def render(functions, pool, compact=False, comments=True, keep_directives=False):
    """Return the complete Plan9 file for translated *functions* (objects with
    ``symbol``, ``frame_size``, ``arg_size`` and ``items``) sharing *pool*.
    """
    lines = list(header)
    pool_lines = render_pool(pool)
    if pool_lines:
        lines.append('')
        lines.extend(pool_lines)
    for fn in functions:
        lines.append('')
        lines.append(text_line(fn.symbol, fn.frame_size, fn.arg_size))
        lines.extend(render_items(fn.items, compact, comments, keep_directives))
    return '\n'.join(lines) + '\n'
