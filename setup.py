from setuptools import setup

setup(
    name='hilldiv',
    version='0.1.0',
    packages=['hilldiv', 'hilldiv.algos', 'hilldiv.metrics', 'hilldiv.tools'],
    description='Taxonomic, functional and phylogenetic diversity of ecological communities based on Hill numbers',
    license='GNU AGPLv3',
    python_requires='>=3.9',
    install_requires=[
        'networkx>=2.6',
        'numba>=0.57',
        'numpy>=1.23',
        'pandas>=1.5',
        'tqdm',
    ],
    extras_require={
        'test': [
            'pytest',
            'scipy',
        ]
    },
)
