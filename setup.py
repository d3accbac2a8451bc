"""
setup.py
"""

from setuptools import setup, find_packages

setup(
    name='multisaml',
    version='1.0.0',
    description='Multi-tenant SAML service provider strategies.',
    license='Apache 2.0',
    packages=find_packages('src/'),
    package_dir={'': 'src'},
    python_requires='>=3.9',
    install_requires=[
        "pysaml2 >= 6.5.1",
        "defusedxml",
        "PyYAML",
        "click",
    ],
    extras_require={
        "test": ["pytest"],
    },
    zip_safe=False,
    classifiers=[
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    entry_points={
        "console_scripts": ["multisaml-metadata=multisaml.scripts.multisaml_metadata:construct_tenant_metadata"]
    }
)
