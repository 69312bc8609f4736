# Copyright (c) 2024 brineylab @ scripps
# Distributed under the terms of the MIT License.
# SPDX-License-Identifier: MIT


import os

from setuptools import find_packages, setup

# read version
version_file = os.path.join(os.path.dirname(__file__), "vdjann", "version.py")
with open(version_file) as f:
    exec(f.read())

# read requirements
with open("requirements.txt") as f:
    requirements = f.read().splitlines()

# read long description
with open("README.md", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="vdjann",
    version=__version__,
    author="Bryan Briney",
    author_email="briney@scripps.edu",
    description="Reference-based annotation of assembled BCR and TCR contigs: V(D)J(C) segment calls, CDR3 and productivity.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/brineylab/vdjann",
    packages=find_packages(),
    scripts=["bin/vdjann"],
    install_requires=requirements,
    extras_require={"test": ["pytest"]},
    include_package_data=True,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
    ],
    python_requires=">=3.8",
)
