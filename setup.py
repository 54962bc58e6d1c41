from setuptools import setup, find_packages
import sys

if sys.version_info < (3, 9):
    print("Please use python 3.9 or newer.")
    sys.exit(1)


requires = [
    "requests",
    "zope.interface",
]

sqlalchemy_deps = ["sqlalchemy>=1.4"]

pyramid_deps = ["pyramid"]


setup(
    name="shopinstall",
    version="0.1a",
    description="Install and authenticate a multi-tenant app in shopify stores.",
    install_requires=requires,
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.9",
    extras_require={
        "sqlalchemy": sqlalchemy_deps,
        "pyramid": pyramid_deps,
        "test": ["pytest"] + sqlalchemy_deps + pyramid_deps,
        "dev": ["flake8", "black"],
    },
)
