from setuptools import setup, find_packages

setup(
    name="annotation_platform",
    version="0.1.0",
    packages=find_packages(include=['annotation_platform', 'annotation_platform.*', 'runner']),
    install_requires=[
        'gffutils>=0.12',
        'pyyaml>=5.4.1',
        'pydantic>=2.0',
        'pandas>=1.3.0',
        'numpy>=1.21.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'annotation-db=runner.execute_query_job:main',
        ],
    },
    python_requires='>=3.8',
    description="Build and query SQLite gene annotation databases from GTF/GFF files",
    long_description=open('README.md').read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "Operating System :: OS Independent",
    ],
)
