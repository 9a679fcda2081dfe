from setuptools import setup, find_packages

setup(
    name="redis-cache-driver",
    version="0.1.0",
    description="Redis driver for a generic async key/value cache layer",
    author="Szymon Urbański",
    author_email="122265380+surbanski-nr@users.noreply.github.com",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    install_requires=[
        "redis>=5.0.1,<8.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.1",
            "black>=23.12.1",
            "mypy>=1.8.0",
        ]
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: System :: Caching",
    ],
    keywords="cache redis valkey driver",
)
