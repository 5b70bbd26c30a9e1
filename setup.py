"""Install authgate package."""

from setuptools import setup, find_packages

setup(
    name='authgate',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "flask",
        "werkzeug",
        "click",
        "pyjwt",
        "redis",
        "retry",
        "pytz",
        "python-dateutil",
        "python-json-logger",
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis",
        ]
    },
    zip_safe=False
)
