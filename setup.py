#!/usr/bin/env python3

from runauth.version import title, description, license, version
from setuptools import setup, find_packages


def install_deps(path):
    with open(path, 'r') as f:
        return [line.strip() for line in f.readlines()
                if line.strip() and not line.startswith('#')]


setup(
    name=title,
    description=description,
    long_description=description,
    license=license,
    version=version,

    classifiers=[
        'Development Status :: 3 - Alpha',

        'Intended Audience :: Developers',
        'Topic :: Internet :: WWW/HTTP :: WSGI :: Application',
        'Topic :: System :: Distributed Computing',

        'License :: OSI Approved :: Apache Software License',

        'Programming Language :: Python :: 3',
    ],

    keywords='cloud run identity token service-to-service authentication',
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=install_deps('requirements.txt'),
    extras_require={
        'test': install_deps('requirements-test.txt'),
    },
    entry_points={
        'console_scripts': [
            'runauth=runauth.cli:main',
        ],
    },
)
