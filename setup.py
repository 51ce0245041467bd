import os

from setuptools import setup, find_packages

# Set up the package
setup(
    name="cwt_engine",
    version="0.1.0",
    author="CWT Engine Contributors",
    author_email="",
    description="Forward and inverse Continuous Wavelet Transform engine for 1-D signals",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "pywavelets>=1.1.0",
        "pyyaml>=5.1",
    ],
    extras_require={
        "dev": ["pytest"],
        "test": ["pytest"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
)
