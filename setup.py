from setuptools import setup, find_packages

setup(
    name="gitnarrator",
    version="0.1.0",
    packages=find_packages(include=["narrator", "narrator.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "httpx",
        "pydantic>=2",
        "pydantic-settings>=2.7",
        "uvicorn",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "respx",
        ],
    },
)
