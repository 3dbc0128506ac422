from setuptools import setup, find_packages

import pathlib
import re
HERE = pathlib.Path(__file__).parent
README = (HERE / "README.md").read_text()
VERSION = re.search(r"__version__ = '([^']+)'", (HERE / "pyschnorr" / "version.py").read_text()).group(1)


setup(
    name="pyschnorr",
    version=VERSION,
    python_requires='>=3.7',
    description="BIP340 Schnorr signatures, MuSig, threshold signatures and Taproot tweaks for python",
    long_description=README,
    long_description_content_type="text/markdown",
    author="rage-proof",
    license="MIT",
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.7",
    ],
    include_package_data=True,
    packages=find_packages(exclude=["tests"]),
    install_requires=['chacha20poly1305==0.0.3'],
    extras_require={'test': ['pytest']}
)
