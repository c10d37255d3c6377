from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="hub-clustering",
    version="0.1.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Hubness-proportional clustering (GHPC, GHPKM, LHPC) for high-dimensional data",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.22.0",
        "scikit-learn>=1.1.0",  # kNN neighbor graph for hubness profiles
        "python-dotenv>=1.0.0",
        "tenacity>=8.0.0",  # restarts after empty clusters
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
        ]
    },
)
