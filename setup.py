"""Setup script for gbdriver."""

from setuptools import setup, find_packages

setup(
    name="gbdriver",
    version="0.1.0",
    description="Frame-paced pygame host for a WebAssembly Game Boy emulation core",
    long_description=open("README.md").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(include=["gbdriver", "gbdriver.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pygame>=2.5.0",
        "numpy>=1.24.0",
        "wasmtime>=20.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "gbdriver=gbdriver.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Emulators",
    ],
)
