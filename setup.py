#!/usr/bin/env python

from setuptools import setup

setup(
    name="gcsopen",
    version="0.1.0",
    description="Open gs:// URLs over HTTPS with cached access tokens",
    url="https://github.com/fsspec/gcsopen",
    license="BSD",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: 3.14",
    ],
    keywords=["google-cloud-storage", "gcloud", "file-system", "htslib"],
    packages=["gcsopen", "gcsopen.tests"],
    install_requires=open("requirements.txt").read().strip().split("\n"),
    extras_require={"test": ["pytest"]},
    entry_points={
        "fsspec.specs": [
            "gs+http=gcsopen.core:GCSURLFileSystem",
            "gs+https=gcsopen.core:GCSURLFileSystem",
        ],
    },
    python_requires=">=3.10",
    long_description_content_type="text/markdown",
    long_description=open("README.md").read(),
    zip_safe=False,
)
