# Release tutorial:
# https://packaging.python.org/tutorials/packaging-projects/
# python -m build
# Then run the following to upload to PyPI
# python -m twine upload --repository testpypi dist/*
# python -m twine upload --repository pypi dist/*


import setuptools, os

# Get the directory of the setup.py file
dir_path = os.path.dirname(os.path.realpath(__file__))
base_dir = os.path.join(dir_path)

readme_file_path = os.path.join(base_dir, 'README.md')
with open(readme_file_path, "r", encoding="utf-8") as fh:
    long_description = fh.read()

setuptools.setup(
    name="LSSMPredict",
    version="1.0.0",
    author="Omid Sani",
    author_email="omidsani@gmail.com",
    description="Causal prediction with identified linear state-space models using the steady state Kalman filter",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/ShanechiLab/PyPSID",
    packages=setuptools.find_packages(where='source'),
    package_dir={"": "source"},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.6',
    install_requires=[
        "numpy",
        "scipy",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
