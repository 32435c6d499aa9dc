"""Install the diary-we-write application."""

from setuptools import setup, find_packages

setup(
    name='diary-we-write',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    package_data={'diarywewrite': ['templates/diarywewrite/*.html']},
    include_package_data=True,
    install_requires=[
        "flask",
        "werkzeug",
        "wtforms",
        "sqlalchemy",
        "flask-sqlalchemy",
        "redis",
        "fakeredis",
        "pyjwt",
        "pytz",
        "python-dateutil",
        "retry",
        "authlib",
        "requests",
        "python-dotenv",
        "python-json-logger",
    ],
    extras_require={
        'mysql': ["mysqlclient"],
        'test': ["pytest", "hypothesis"],
    },
    zip_safe=False
)
