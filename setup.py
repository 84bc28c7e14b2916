#!/usr/bin/env python

from setuptools import setup

setup(
    name="indexsync",
    version="0.1.0",
    description="Keep elasticsearch indices in sync with changed objects",
    packages=["indexsync", "indexsync.strategy"],
    include_package_data=True,
    zip_safe=False,
    keywords=["elasticsearch", "index", "search"],
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Topic :: Database :: Front-Ends",
    ],
    python_requires=">=3.10",
    install_requires=[
        "elasticsearch~=8.6",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
        "class-doc",
    ],
    extras_require={
        'dev': [
            'pytest',
            'mypy',
            'flake8',
        ]
    },
    entry_points={
        'console_scripts': [
            'indexsync = indexsync.__main__:main'
        ]
    },
)
