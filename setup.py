# SPDX-License-Identifier: AGPL-3.0-or-later
"""Installer for favget package."""

from setuptools import setup, find_packages

version = {}
with open('favget/version.py', encoding='utf-8') as f:
    exec(f.read(), version)  # pylint: disable=exec-used

with open('README.rst', encoding='utf-8') as f:
    long_description = f.read()

with open('requirements.txt') as f:
    requirements = [l.strip() for l in f.readlines() if l.strip()]

with open('requirements-dev.txt') as f:
    dev_requirements = [l.strip() for l in f.readlines() if l.strip()]

setup(
    name='favget',
    description="favget resolves the favicon of a site and caches it on disk.",
    long_description=long_description,
    long_description_content_type='text/x-rst',
    license="AGPL-3.0-or-later",
    author='favget',
    python_requires=">=3.10",
    version=version['VERSION_TAG'],
    keywords='favicon icon cache http',
    url=version['DOCS_URL'],
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Topic :: Internet",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    project_urls={"Code": version['GIT_URL'], "Issue tracker": version['ISSUE_URL']},
    entry_points={
        'console_scripts': ['favget-run = favget.webapp:run'],
    },
    packages=find_packages(
        include=[
            'favget',
            'favget.*',
        ]
    ),
    package_data={
        'favget': [
            '*.toml',
            'static/*',
        ],
    },
    install_requires=requirements,
    extras_require={'test': dev_requirements},
)
