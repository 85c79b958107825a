from setuptools import setup, find_packages

setup(
    name='ShadowWar',
    version='0.1',
    packages=find_packages(include=['world_server', 'world_server.*', 'simulation', 'simulation.*', 'utils']),
    package_data={'world_server': ['*.yaml']},
    install_requires=[
        "numpy",
        "pandas",
        "matplotlib",
        "pyyaml",
        "pydantic>=2",
    ],
    extras_require={
        'test': ['pytest'],
    },
    author='Danyang Chen, Chenyu Li',
    description='Shadow War: turn-based covert AI conflict simulator with a Monte Carlo balance harness',
)
