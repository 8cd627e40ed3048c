#!/usr/bin/env python

import io

from setuptools import setup, find_packages

with io.open('README.rst') as f:
    readme = f.read()

setup(
    name='sqlaseek',
    version='0.1.0',
    description='continuation-token keyset paging for sqlalchemy',
    long_description=readme,
    install_requires=[
        'sqlalchemy>=1.4',
        'python-dateutil',
        'msgpack>=1.0',
    ],
    extras_require={
        'test': ['pytest'],
    },
    python_requires='>=3.8',
    zip_safe=False,
    packages=find_packages(exclude=['tests']),
    classifiers=[
    ]
)
