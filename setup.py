from setuptools import setup, find_packages


setup(
    name="blobpack",
    version="0.1",
    packages=find_packages(include=["blobpack", "blobpack.*"]),
    description="Pack many named binary resources into one flat container file, with eager and streaming readers.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "blobpack=blobpack.cli:main",
        ]
    },
)
