#!/usr/bin/python

# setuptools setup module.
#
# Based on setup.py on https://github.com/pypa/sampleproject.

from setuptools import setup
from os import path
# To scrape version information
import re

def find_version(file_path):
    """
    Scrape version information from specified file path.

    """
    with open(file_path, 'r', encoding='utf-8') as f:
        file_contents = f.read()
    version_match = re.search(r"^__version__\s*=\s*['\"]([^'\"]*)['\"]",
                              file_contents, re.M)
    if version_match:
        return version_match.group(1)
    else:
        raise RuntimeError("unable to find version string")

here = path.abspath(path.dirname(__file__))

# Get long description
with open(path.join(here, 'README.rst'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='FlowRead',

    # Versions should comply with PEP440.  For a discussion on single-sourcing
    # the version across setup.py and the project code, see
    # https://packaging.python.org/en/latest/single_source_version.html
    version=find_version(path.join(here, 'FlowRead', '__init__.py')),

    description='Flow Cytometry Standard (FCS 3.0/3.1) file reader',
    long_description=long_description,
    long_description_content_type='text/x-rst',

    # Choose your license
    license='MIT',

    # See https://pypi.python.org/pypi?%3Aaction=list_classifiers
    classifiers=[
        # How mature is this project? Common values are
        #   3 - Alpha
        #   4 - Beta
        #   5 - Production/Stable
        'Development Status :: 3 - Alpha',

        # Indicate who your project is intended for
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Bio-Informatics',

        # Pick your license as you wish (should match "license" above)
        'License :: OSI Approved :: MIT License',

        'Programming Language :: Python :: 3',
    ],

    # What does your project relate to?
    keywords='flow cytometry fcs',

    packages=['FlowRead'],

    python_requires='>=3.8',

    # List run-time dependencies here.  These will be installed by pip when
    # your project is installed. For an analysis of "install_requires" vs pip's
    # requirements files see:
    # https://packaging.python.org/en/latest/requirements.html
    install_requires=['numpy>=1.20.0'],

    # Tests only use unittest; pytest can also collect them.
    # $ pip install -e .[test]
    extras_require={
        'test': ['pytest'],
    },
)
