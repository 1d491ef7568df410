# -'- coding: utf-8 -'-

import os, re, shutil, tempfile, subprocess


def hexstr(code):
    """Return machine code as a string of space-separated hex bytes.
    """
    return ' '.join('%02x' % c for c in bytearray(code))


def have_binutils():
    """Return True if GNU as and objdump are available for verification.
    """
    return shutil.which('as') is not None and shutil.which('objdump') is not None


def run_as(asm, quiet=False):
    """Use GNU assembler to compile the *asm* string argument.

    This prepends the given code with ".intel_syntax noprefix\n" before
    compiling and returns the relevant lines of objdump output. If the
    compile fails, then an exception is raised.
    """
    asm = ".intel_syntax noprefix\n" + asm + "\n"
    tmpdir = tempfile.mkdtemp()
    try:
        src = os.path.join(tmpdir, 'code.s')
        obj = os.path.join(tmpdir, 'code.o')
        with open(src, 'w') as fh:
            fh.write(asm)
        proc = subprocess.run(['as', src, '-o', obj], stdout=subprocess.PIPE,
                              stderr=subprocess.STDOUT)
        out = proc.stdout.decode('ascii', 'replace')
        if proc.returncode == 0:
            out = subprocess.check_output(['objdump', '-d', '-M', 'intel', obj])
            out = out.decode('ascii', 'replace').split('\n')
            for i, line in enumerate(out):
                if "Disassembly of section .text:" in line:
                    return out[i+3:]
            out = '\n'.join(out)
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)

    if not quiet:
        print("--- code: ---")
        print(asm)
        print("--- output: ---")
        print(out)
        print("-------------")

    errmsg = re.search(r'Error:\s*(.*)\n', out)
    if errmsg is None:
        errmsg = "Error running 'as' or 'objdump' (see above)."
    else:
        errmsg = errmsg.groups()[0]
    exc = Exception(errmsg)
    exc.asm = asm
    exc.output = out
    raise exc


def as_code(asm, quiet=False):
    """Use GNU assembler to compile the *asm* string argument.

    This prepends the given code with ``.intel_syntax noprefix`` before
    compiling and returns the machine code output converted to bytes. If the
    compile fails, then an exception is raised.
    """
    code = b''
    for line in run_as(asm, quiet=quiet):
        if line.strip() == '':
            continue
        m = re.match(r'\s*[a-f0-9]+:\s+(([a-f0-9][a-f0-9]\s)+)', line)
        if m is None:
            raise Exception("Can't parse objdump output: \"%s\"" % line)
        code += bytes(bytearray.fromhex(m.groups()[0]))
    return code
