from setuptools import setup, find_packages


install_requires = [
    'PyYAML>=3.0',
    'pyproj>=2',
    'jsonschema>=4',
    'werkzeug<4',
    'Pillow>=8,!=8.3.0,!=8.3.1;python_version=="3.9"',
    'Pillow>=9;python_version=="3.10"',
    'Pillow>=10;python_version=="3.11"',
    'Pillow>=10.1;python_version=="3.12"',
    'Pillow>=11;python_version=="3.13"',
]


def long_description():
    return open('README.md').read()


setup(
    name='TileFront',
    version="0.1.0",
    description='A caching front for tiled map requests with metatiling and backend failover',
    long_description=long_description(),
    long_description_content_type='text/markdown',
    author='The TileFront Authors',
    license='Apache Software License 2.0',
    packages=find_packages(),
    include_package_data=True,
    entry_points={
        'console_scripts': [
            'tilefront-util = tilefront.script.util:main',
        ],
    },
    package_data={'': ['*.yaml', '*.json']},
    install_requires=install_requires,
    extras_require={
        'test': ['pytest'],
    },
    python_requires='>=3.9',
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Internet :: Proxy Servers",
        "Topic :: Scientific/Engineering :: GIS",
    ],
    zip_safe=False
)
