from setuptools import setup, find_packages

setup(
    name="caseclerk",
    version="0.1",
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'flask',
        'python-dotenv',
        'flask-sqlalchemy',
        'flask-migrate',
        'flask-login',
        'flask-limiter',
        'flask-cors',
        'psycopg2-binary',
        'python-dateutil',
        'werkzeug',
        'requests',
        'apscheduler',
        'PyJWT',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    python_requires='>=3.8',
)
