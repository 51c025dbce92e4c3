# -*- coding: utf-8 -*-

from setuptools import find_packages, setup

extras_require = {
    "test": [
        "pytest>=8.0,<9.0",
        "pytest-cov>=4.1,<7.0",
        "pytest-instafail>=0.5,<1.0",
        "pytest-xdist>=3.0,<4.0",
        "hypothesis[lark]>=6.0,<7.0",
    ],
    "lint": [
        "black==23.12.0",
        "flake8==6.1.0",
        "flake8-bugbear==23.12.2",
        "flake8-use-fstring==1.4",
        "isort==5.13.2",
        "mypy==1.5",
    ],
    "dev": ["ipython", "pre-commit", "twine"],
}

extras_require["dev"] = extras_require["test"] + extras_require["lint"] + extras_require["dev"]

with open("README.md", "r") as f:
    long_description = f.read()

version = {}
with open("rivet/version.py", "r") as f:
    exec(f.read(), version)


setup(
    name="rivet",
    version=version["version"],
    description="Rivet: reachable integer values analysis over a typed SSA IR",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Rivet Team",
    author_email="",
    license="Apache License 2.0",
    keywords="compiler ssa dominator tree dataflow analysis",
    include_package_data=True,
    packages=find_packages(include=["rivet", "rivet.*"]),
    python_requires=">=3.11,<4",
    install_requires=["lark>=1.1.9,<2"],
    tests_require=extras_require["test"],
    extras_require=extras_require,
    entry_points={"console_scripts": ["rivet=rivet.cli.rivet_main:_parse_cli_args"]},
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
