"""Install the keygate service."""

from setuptools import setup, find_packages

setup(
    name='keygate',
    version='0.1.0',
    packages=find_packages(exclude=['tests', '*.tests', '*.tests.*']),
    py_modules=['wsgi'],
    install_requires=[
        "flask",
        "werkzeug",
        "pyjwt",
        "redis",
        "requests",
        "cryptography",
        "python-json-logger",
        "click",
        "pytz"
    ],
    extras_require={
        'test': [
            "pytest",
            "fakeredis"
        ]
    },
    entry_points={
        'console_scripts': [
            'keygate-provision=keygate.provision:provision'
        ]
    },
    zip_safe=False
)
