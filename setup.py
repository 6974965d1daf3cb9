from setuptools import setup


setup(
    name="spend-sheet",
    version="0.1.0",
    description="Normalize monthly spending spreadsheets into dashboard-ready time series",
    packages=["spend_sheet"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "requests",
        "google-auth",
        "flask",
        "python-dotenv",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "spend-sheet=spend_sheet.cli:main",
        ]
    },
)
