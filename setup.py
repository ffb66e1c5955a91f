from setuptools import setup, find_namespace_packages

setup(
    name='jhsiao-bufscan',
    version='0.0.1',
    author='Jason Hsiao',
    author_email='oaishnosaj@gmail.com',
    description='Scan buffered byte streams until a stateful predicate finds a boundary',
    packages=find_namespace_packages(include=['jhsiao.*']),
    install_requires=['numpy'],
    extras_require={'test': ['pytest']},
)
