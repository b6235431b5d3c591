"""Setup configuration for opsgenie_reports"""

from setuptools import setup, find_packages

setup(
    name="opsgenie-reports",
    version="0.1.0",
    description=(
        "CLI reports from Opsgenie: on-call lookups, on-call payment, "
        "toil accounting and alert statistics."
    ),
    author="Opsgenie Reports Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "opsgenie-reports=opsgenie_reports.main:main",
        ],
    },
)
