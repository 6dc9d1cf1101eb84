from setuptools import setup, find_packages

setup(
    name='cnoectl',
    version='0.1.0',
    packages=find_packages(include=['cnoectl', 'cnoectl.*']),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'kubernetes',
        'urllib3',
        'boto3',
        'paramiko',
        'PyYAML',
        'jsonschema',
        'python-dotenv',
    ],
    extras_require={
        'test': [
            'pytest',
        ]
    },
    entry_points={
        'console_scripts': [
            'cnoectl=cnoectl.cli:app'
        ]
    },
    description='CLI that bootstraps the CNOE AWS Reference Implementation and syncs its secrets',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
