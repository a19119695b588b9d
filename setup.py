import io
import re

from setuptools import find_packages, setup

__version__ = re.search(
    r'__version__\s*=\s*[\'"]([^\'"]*)[\'"]',
    io.open("src/framedist/version.py", encoding="utf_8_sig").read(),
).group(1)


setup(
    name="framedist",
    version=__version__,
    description="framedist is a Python library for distributing frames of a dataset over a pool of workers.",
    long_description="""framedist is a Python library for dynamic, pull-based distribution of frames cut from a 2-D dataset over a pool of workers communicating by messages.""",
    author="",
    author_email="",
    package_dir={"": "src"},
    packages=find_packages("src"),
    zip_safe=False,
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "pyzmq",
        "pydantic>=2",
        "typing_extensions",
        "fire",
    ],
    extras_require={
        "tests": ["pytest"],
    },
)
