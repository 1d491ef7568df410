# -*- coding: utf-8 -*-
import os, sys
import setuptools

# Make sure this version is the first to import
sys.path.insert(0, os.path.dirname(__file__))
import c2plan9


description = """\
c2plan9 translates x86-64 assembly generated by C/C++ compilers (Intel
syntax, SystemV AMD64 calling convention) into Go Plan9 assembly. SIMD and
intrinsics-heavy routines compiled with clang or gcc can then be called from
Go with no cgo overhead. Instructions the Go assembler does not know are
re-encoded to machine code by a built-in table-driven x86-64 encoder.
"""


def package_tree(pkgroot):
    path = os.path.dirname(os.path.abspath(__file__))
    subdirs = [os.path.relpath(i[0], path).replace(os.path.sep, '.')
               for i in os.walk(os.path.join(path, pkgroot))
               if '__init__.py' in i[2]]
    return subdirs

setuptools.setup(
    name='c2plan9',
    version=c2plan9.__version__,
    license='MIT',
    keywords="assembly plan9 go x86-64 simd avx translation",
    description="Translate compiler-generated x86-64 assembly to Go Plan9 assembly",
    long_description=description,
    platforms='any',
    install_requires=[],
    extras_require={'test': ['pytest']},
    packages=package_tree('c2plan9'),
    package_dir={'c2plan9': 'c2plan9'},
    entry_points={'console_scripts': ['c2plan9 = c2plan9.cli:main']},
    python_requires='>=3.6',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Software Development :: Assemblers',
        'Topic :: Software Development :: Compilers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
    ],
)
