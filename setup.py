from setuptools import find_packages, setup

setup(
    name="ewaste-hub",
    version="0.1.0",
    packages=find_packages(include=["ewaste", "ewaste.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.29",
        "pydantic>=2.6",
        "pydantic-settings>=2.2",
        "httpx>=0.27",
        "sqlalchemy[asyncio]>=2.0",
        "aiosqlite>=0.20",
        "asyncpg>=0.29",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "respx>=0.21",
        ],
    },
)
