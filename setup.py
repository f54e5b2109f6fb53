import re

from setuptools import setup

with open("README.rst") as readme:
    long_description = readme.read()

with open("detachedsigner/__init__.py") as init:
    version = re.search(r'^__version__ = "([^"]+)"', init.read(), re.M).group(1)

setup(
    name="detached-signer",
    version=version,
    description="Sign Bitcoin transaction inputs with externally supplied keys",
    long_description=long_description,
    license="MIT",
    keywords="bitcoin transaction signing multisig segwit",
    install_requires=[
        "base58check>=1.0.2,<2.0",
        "ecdsa>=0.16,<1.0",
        "sympy>=1.2,<2.0",
        "hdwallet>=2.2,<3",
    ],
    python_requires=">=3.10",
    packages=["detachedsigner"],
    zip_safe=False,
)
