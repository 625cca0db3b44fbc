import re
from pathlib import Path

from setuptools import find_packages, setup

# Read without importing: the package imports its runtime dependencies.
VERSION = re.search(
    r'^VERSION: str = "([^"]+)"', (Path(__file__).parent / "src" / "specrun" / "constants.py").read_text(), re.M
).group(1)

DESCRIPTION = """Hierarchical spec runner (specrun)
Runs nested contexts of examples with before/act/after hooks per example and
before_all/after_all hooks per context, declared inline or on spec classes and
inherited through the spec class hierarchy.
"""

setup(
    name="specrun",
    version=VERSION,
    packages=find_packages(where="src", exclude=["__pycache__", "*.__pycache__*"]),
    package_dir={"": "src"},
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "behave<2.0,>=1.3.3",
        "dotenv<1.0,>=0.9.9",
    ],
    extras_require={
        "test": [
            "pytest>=8.3,<9.0",
            "pytest-mock>=3.14,<4.0",
        ],
    },
    description=DESCRIPTION,
    long_description=DESCRIPTION,
    license="MIT License",
    classifiers=["Programming Language :: Python :: 3.8"],
)
