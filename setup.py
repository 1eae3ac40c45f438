#!/usr/bin/env python
from setuptools import setup

setup(
    name='gpget',
    version='0.3.0',
    description='Securely retrieve files from hostile storage, using GPG',
    license='MIT',
    packages=['gpget', 'gpget.tests'],
    install_requires=[
        'cryptography>=3.4.6',
        'ecdsa>=0.16',
        'pynacl>=1.4.0',
        'requests>=2.20',
    ],
    extras_require={'test': ['pytest', 'mock']},
    platforms=['POSIX'],
    classifiers=[
        'Environment :: Console',
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX',
        'Programming Language :: Python :: 3.7',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Topic :: Security :: Cryptography',
        'Topic :: Internet :: WWW/HTTP',
        'Topic :: System :: Software Distribution',
    ],
    entry_points={'console_scripts': ['gpget = gpget.__main__:main']},
)
