from setuptools import setup
import os

__version__ = "0.0.0"
with open("pyenip/_version.py") as f:
    exec(f.read())


def read(file_name):
    return open(os.path.join(os.path.dirname(__file__), file_name)).read()


setup(
    name="pyenip",
    version=__version__,
    description="An EtherNet/IP client, device discovery and PLC simulator using unconnected CIP messaging.",
    long_description=read("README.rst"),
    license="MIT",
    packages=["pyenip", "pyenip.packets", "pyenip.cip"],
    python_requires=">=3.7",
    include_package_data=True,
    extras_require={
        'tests': ['pytest']
    },
    entry_points={
        'console_scripts': ['pyenip=pyenip.__main__:main']
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Manufacturing",
        "Natural Language :: English",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
        "Topic :: Scientific/Engineering :: Human Machine Interfaces",
    ],
)
