import os
import re
import setuptools
from typing import List


def get_content(file: str) -> str:
    with open(file, "r", encoding="utf-8") as f:
        return f.read()


def get_version(package: str) -> str:
    path = os.path.join(package, "__init__.py")
    return re.search("__version__ = ['\"]([^'\"]+)['\"]", get_content(path)).group(1)


def get_packages(package: str) -> List[str]:
    return [
        directory.replace(os.sep, ".")
        for directory, subdirectories, filenames in os.walk(package)
        if os.path.exists(os.path.join(directory, "__init__.py"))
    ]


setuptools.setup(
    name="crud_core",
    version=get_version("crud_core"),
    packages=get_packages("crud_core"),
    package_data={
        "crud_core.persistence": ["alembic/*.py", "alembic/*.mako", "alembic/versions/*.py"]
    },
    description="CRUD core REST API for people, roles and building components",
    long_description=get_content("README.md"),
    long_description_content_type="text/markdown",
    install_requires=[
        "aiohttp>=3.9,<4.0",
        "alembic>=1.13,<2.0",
        "argon2-cffi>=23.1.0",
        "fastapi>=0.110,<1.0",
        "pydantic>=2.5,<3.0",
        "pydantic-settings>=2.1,<3.0",
        "python-jose>=3.3.0,<4.0",
        "python-multipart>=0.0.7",
        "redis>=5.0,<6.0",
        "SQLAlchemy>=2.0,<3.0",
        "uvicorn>=0.27.0,<1.0"
    ],
    extras_require={
        "tests": [
            "httpx>=0.25,<1.0",
            "requests>=2.31.0,<3.0"
        ]
    },
    project_urls={},
    python_requires=">=3.9",
    classifiers=[
        "Operating System :: OS Independent",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Development Status :: 3 - Alpha"
    ]
)
