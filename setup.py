from setuptools import find_packages, setup

setup(name='challenge_client',
      version='1.0',
      include_package_data=True,
      package_data={
            'challenge_client': ['py.typed'],
      },
      python_requires='>=3.8',
      install_requires=[
            'solders',
            'solana',
            'borsh-construct',
            'construct',
            'hexbytes',
            'base58',
            'python-dotenv',
      ],
      extras_require={
            'test': [
                  'pytest',
            ],
      },
      entry_points={
            'console_scripts': [
                  'challenge-client=challenge_client.cli:main',
            ],
      },
      packages=find_packages('.', include=('challenge_client*',)),
)
