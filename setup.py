from setuptools import setup, find_packages


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="flowassign",
    version="0.1.0",
    description="Minimum-cost assignment of workers to tasks with per-task worker bounds.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    packages=find_packages(exclude=("tests",)),
    python_requires=">=3.9",
    install_requires=["networkx", "pandas", "pyyaml"],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["flowassign=flowassign.cli:main"]},
)
