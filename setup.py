# Python version 3.8 and up.
from setuptools import setup, find_packages
from codecs import open
from os import path


here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

install_reqs = ["fasteners"]

setup(
    version='1.0.0',
    name='stund',
    description='Rate limited STUN binding server for UDP',
    keywords=('STUN, NAT traversal, XOR-MAPPED-ADDRESS, UDP, binding request, rate limit, python'),
    long_description_content_type="text/markdown",
    long_description=long_description,
    license='public domain',
    package_dir={"": "."},
    packages=find_packages(exclude=('tests', 'docs', 'examples', 'scripts')),
    include_package_data=True,
    install_requires=install_reqs,
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "stund = stund.__main__:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        'Intended Audience :: Developers',
        'Programming Language :: Python :: 3'
    ],
)
