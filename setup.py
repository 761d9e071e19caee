from setuptools import find_packages, setup

setup(
    name="legen",
    version="0.1.0",
    packages=find_packages(include=["legen", "legen.*"]),
    include_package_data=True,
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "cryptography",
        "requests",
        "click",
        "python-multipart",
        "reportlab",
        "pypdf",
        "Pillow",
        "pytesseract",
    ],
    extras_require={
        "test": [
            "pytest<9.1",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "legen=legen.cli:cli",
        ],
    },
)
