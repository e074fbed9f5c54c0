#!/usr/bin/env python
# -*- coding: utf-8 -*-
from setuptools import setup

# There are problems running setup.py on Windows if the encoding is not set
with open('README.md', encoding='utf8') as readme_file:
    readme = readme_file.read()
with open('HISTORY.rst', encoding='utf8') as history_file:
    history = history_file.read()

with open('analytics/VERSION', encoding='utf8') as version_file:
    version = version_file.read().strip()


setup(
    name='analytics-batch',
    version=version,
    description="Batching analytics client that ships identify and track events in the background.",
    long_description=readme + '\n\n' + history,
    long_description_content_type="text/markdown",
    author="analytics-python contributors",
    packages=[
        'analytics',
        'analytics.config',
        'analytics.dispatch',
        'analytics.models',
        'analytics.transport',
    ],
    package_dir={'analytics': 'analytics'},
    package_data={'analytics': ['VERSION']},
    include_package_data=True,
    install_requires=[
        'httpx>=0.26',
        'pydantic>=2.0',
        'tenacity>=8.2',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    python_requires=">=3.8",
    license="MIT license",
    zip_safe=False,
    keywords='analytics',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ]
)
