from pathlib import Path

from setuptools import find_packages
from setuptools import setup


HERE = Path(__file__).resolve().parent


def get_long_description():
    readme = HERE / "README.md"
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


setup(
    name="sqltrace",
    version="0.1.0",
    description="Tracing of relational database client operations",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    license="BSD",
    packages=find_packages(exclude=["tests*"]),
    package_data={"sqltrace": ["py.typed"]},
    python_requires=">=3.8",
    zip_safe=False,
    install_requires=[
        "attrs>=20",
        "envier~=0.5",
        "wrapt>=1.14",
    ],
    extras_require={
        "tests": [
            "mock",
            "pytest",
            "pytest-cov",
            "riot",
        ],
    },
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Database",
        "Topic :: System :: Monitoring",
    ],
)
