# -'- coding: utf-8 -'-

import logging

from c2plan9 import cli

from test_translator import fma_asm, fma_go, fma_plan9


def write(path, text):
    with open(str(path), 'w') as fh:
        fh.write(text)
    return str(path)


def read(path):
    with open(str(path)) as fh:
        return fh.read()


def test_translate_file(tmp_path):
    src = write(tmp_path / 'fma_avx2.s', fma_asm)
    go = write(tmp_path / 'fma_amd64.go', 'package main\n\n' + fma_go + '\n')
    out = str(tmp_path / 'fma_amd64.s')
    stubs = str(tmp_path / 'fma_decl.go')
    assert cli.main([src, out, '-p', go, '-c', '-s', '--stubs', stubs,
                     '--package', 'simd']) == 0
    assert read(out) == fma_plan9
    assert 'package simd' in read(stubs)
    assert 'func _fma(a unsafe.Pointer' in read(stubs)


def test_failure(tmp_path, capsys):
    src = write(tmp_path / 'bad.s', fma_asm.replace('\tpop\trbp\n',
                                                  '\tcall\tputs@PLT\n\tpop\trbp\n'))
    out = tmp_path / 'out.s'
    assert cli.main([src, str(out)]) == 1
    assert not out.exists()
    err = capsys.readouterr().err
    assert 'bad.s:' in err
    assert 'UnsupportedCallError' in err



def test_bad_prototypes(tmp_path, capsys):
    src = write(tmp_path / 'fma.s', fma_asm)
    go = write(tmp_path / 'fma.go', 'package main\n\nfunc _fma(a, b unsafe.Pointer, c)\n')
    out = tmp_path / 'out.s'
    assert cli.main([src, str(out), '-p', go]) == 1
    assert not out.exists()
    err = capsys.readouterr().err.strip().split('\n')
    assert len(err) == 1
    assert err[0].startswith(go + ': _fma: ParseError')


def test_format_without_asmfmt(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(cli.shutil, 'which', lambda name: None)
    src = write(tmp_path / 'fma.s', fma_asm)
    out = str(tmp_path / 'fma_amd64.s')
    with caplog.at_level(logging.WARNING):
        assert cli.main([src, out, '-f', '-c', '-s', '-p', write(tmp_path / 'f.go', fma_go)]) == 0
    assert read(out) == fma_plan9
    assert 'asmfmt not found' in caplog.text


def test_parser_options():
    args = cli.build_parser().parse_args(['in.s', 'out.s', '-j', '4', '-vv',
                                          '--stub-package', 'helpers'])
    assert args.jobs == 4
    assert args.verbose == 2
    assert args.stub_package == 'helpers'
    assert args.package == 'main'
    assert not args.compact
