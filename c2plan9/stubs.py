# -'- coding: utf-8 -'-
"""
Go declarations for translated functions.

The Plan9 file only holds the bodies; Go needs a matching declaration for
each ``TEXT`` symbol. This renders them from the per-function output of
:func:`c2plan9.translate`::

    //go:noescape
    func _fma(a, b, c, result unsafe.Pointer)
"""


def go_declarations(result, package='main'):
    """Return Go source declaring every function of translation *result*
    (a TranslationResult or a list of FunctionInfo).
    """
    functions = getattr(result, 'functions', result)
    decls = []
    need_unsafe = False
    for info in functions:
        sig = info.signature
        kinds = [a.kind for a in sig.args]
        if sig.result is not None:
            kinds.append(sig.result.kind)
        if any('unsafe.' in k for k in kinds):
            need_unsafe = True
        decl = sig.go_declaration()
        if sig.name != info.symbol:
            decl = decl.replace('func %s(' % sig.name, 'func %s(' % info.symbol, 1)
        decls.append('//go:noescape\n' + decl)

    lines = ['// Code generated by c2plan9. DO NOT EDIT.',
             '//+build !noasm !appengine',
             '',
             'package %s' % package,
             '']
    if need_unsafe:
        lines += ['import "unsafe"', '']
    return '\n'.join(lines) + '\n' + '\n\n'.join(decls) + '\n'
