"""Install the Collabrix identity services."""

from setuptools import setup, find_packages

setup(
    name='collabrix-identity',
    version='0.1.0',
    packages=find_packages(include=['collab_auth*', 'accounts*',
                                    'profiles*'],
                           exclude=['*.tests', '*.tests.*']),
    install_requires=[
        "click",
        "email-validator",
        "fakeredis",
        "flask",
        "flask-sqlalchemy",
        "pyjwt",
        "pytz",
        "redis",
        "retry",
        "sqlalchemy",
        "werkzeug",
        "wtforms",
    ],
    extras_require={
        'test': [
            "pytest",
            "pytest-mock",
        ]
    },
    entry_points={
        'console_scripts': [
            'profiles-worker=profiles.worker:main',
        ]
    },
    zip_safe=False
)
