from setuptools import setup, find_packages

setup(
    name="krb5perf",
    version="0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        'requests',
        'pyyaml',
        'numpy',
        'scipy',
        'python-dotenv',
        'rich',
    ],
    extras_require={
        'kerberos': ['krb5'],
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'krb5perf=krb5perf.main:main',
        ],
    },
)
