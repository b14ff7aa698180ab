from setuptools import setup, find_namespace_packages

# Read the content of your requirements.txt file
with open('requirements.txt') as f:
    required_packages = f.read().splitlines()

setup(
    name='urt_daa_benchmark',
    version='0.1.0',
    packages=find_namespace_packages(include=('urt_daa', 'urt_daa.*')),
    #license='TBD',
    description='Simulation benchmark of differential abundance methods (ANCOM-BC2, ANCOM-BC, CORNCOB, LinDA, LOCOM) on URT-calibrated microbiome counts',
    long_description=open('README.md').read(),
    install_requires=required_packages,
    extras_require={
        'test': ['pytest'],
        'docs': ['sphinx', 'sphinx_rtd_theme'],
    },
    python_requires='>=3.9',
)
