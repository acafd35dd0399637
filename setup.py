from setuptools import setup, find_packages

setup(
    name="pcal",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["pcal", "pcal.*"]),
    package_data={"pcal": ["py.typed"]},
    python_requires=">=3.10",
    install_requires=[
        'icalendar>=6.0.0',
        'PyYAML>=6.0',
        'tabulate>=0.9.0',
        'typing_extensions>=4.5.0'
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0'
        ]
    },
    entry_points={
        'console_scripts': [
            'pcal=pcal.cli:main'
        ]
    }
)
