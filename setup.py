"""Setup file for the package."""

from setuptools import setup, find_packages

setup(
    name="worldmodel",
    version="1.0.0",
    packages=find_packages(include=["worldmodel", "worldmodel.*"]),
    install_requires=[
        "python-dotenv>=1.0.0",
        "supabase>=2.0.0",
        "postgrest>=0.13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    description="World model of e-commerce sites built from captured user interaction sessions",
    python_requires='>=3.9',
)
