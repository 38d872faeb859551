from setuptools import setup, find_packages

setup(
    name="stat-forest",
    version="1.0.0",
    description="Random forest regression and hyperparameter tuning for player stat projections",
    author="Cascade",
    author_email="info@example.com",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "numpy",
        "scikit-learn",
        "joblib",
        "matplotlib",
        "seaborn",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        'console_scripts': [
            'stat-forest=stat_forest.scripts.main:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)
