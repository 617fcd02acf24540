from __future__ import annotations

import os
import re

from setuptools import find_packages
from setuptools import setup

here = os.path.dirname(os.path.abspath(__file__))

with open(os.path.join(here, "lib", "shardstore", "__init__.py")) as file_:
    VERSION = (
        re.compile(r""".*__version__ = ["'](.*?)['"]""", re.S)
        .match(file_.read())
        .group(1)
    )

with open(os.path.join(here, "README.rst")) as file_:
    readme = file_.read()

setup(
    name="shardstore",
    version=VERSION,
    description="Sharded record store over SQLAlchemy Core partitions",
    long_description=readme,
    author="the Shardstore authors and contributors",
    license="MIT",
    python_requires=">=3.9",
    package_dir={"": "lib"},
    packages=find_packages("lib"),
    install_requires=["SQLAlchemy>=2.0"],
    extras_require={
        "test": ["pytest>=7.0"],
        "lint": ["flake8", "flake8-import-order"],
    },
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Topic :: Database :: Front-Ends",
    ],
)
