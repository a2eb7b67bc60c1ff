#!/usr/bin/env python
from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='ldap-authkeys',
    version='1.0.0',
    description='Look up SSH public keys and group members in LDAP',
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=['ldap', 'ssh', 'authorized_keys'],
    packages=find_packages(exclude=['bin']),
    include_package_data=True,
    python_requires='>=3.10',
    install_requires=[
        'click',
        'ldap_filter',
        'pydantic>=2',
        'python-ldap',
    ],
    extras_require={
        'test': [
            'pytest',
            'python-ldap-faker',
        ],
    },
    entry_points={
        'console_scripts': [
            'authkeys = authkeys.cli:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3"
    ],
)
