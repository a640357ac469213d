# setup.py
from setuptools import setup, find_packages

setup(
    name="polymer-scft",
    version="0.1.0",
    packages=find_packages(include=["polymer_scft", "polymer_scft.*"]),
    install_requires=[
        "numpy",
        "scipy",
        "numba",
        "matplotlib",
        "pyyaml",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
    author="Leon A. Smook",
    description="Finite-difference chain propagators for polymer SCFT",
)
