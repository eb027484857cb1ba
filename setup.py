#!/usr/bin/env python

from setuptools import setup, find_namespace_packages

setup(
    name="iondiscover",
    version="1.0.0",
    description="Connectionless service announcement over UDP broadcast",
    packages=find_namespace_packages("src", include=["iondiscover", "iondiscover.*"]),
    package_dir={"": "src"},
    package_data={"": ["py.typed"]},
    python_requires=">=3.8",
    install_requires=("psutil",),
    extras_require={
        "test": ("pytest", "pytest-timeout"),
    },
    entry_points={
        "console_scripts": [
            "iondiscover-publish=iondiscover.cli:publish_main",
            "iondiscover-list=iondiscover.cli:list_main",
        ],
    },
)
