from setuptools import setup, find_packages

setup(
    name='trusty',
    version='1.0',
    packages=find_packages(exclude=['tests']),
    py_modules=[
        'columnar_batch',
        'loader',
        'model_errors',
        'objective',
        'predictor',
        'xgboost_parser',
    ],
    description='Gradient-boosted tree inference over columnar batches',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    python_requires='>=3.10',
    install_requires=[
        'numpy',
        'pandas',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
