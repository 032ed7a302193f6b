# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="repomix-autotune",
    version="0.1.0",
    description="Generate repomix configurations that keep every packed artifact within a token budget",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["repomix_autotune*"]),
    python_requires=">=3.9",
    install_requires=[
        "requests",
        "tiktoken",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'repomix-autotune=repomix_autotune.main:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
