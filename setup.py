# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="gpgstore",
    version="1.0.0",
    description="Browse a GPG password store and edit entries through the gpg tool",
    author="Enrique Paredes",
    author_email="eparedesbalen@gmail.com",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["gpgstore", "gpgstore.*"]),
    package_data={"gpgstore": ["interface/locales/*.json"]},
    python_requires=">=3.9",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'gpgstore=gpgstore.main:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
