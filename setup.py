"""Setup configuration for the client intake wizard and submission handler."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="clientintake",
    version="0.1.0",
    author="Client Intake Team",
    description="Multi-section client intake wizard and submission handler",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"clientintake": ["templates/*.html", "templates/email/*.html"]},
    include_package_data=True,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Framework :: Flask",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "jsonschema>=4.20.0",
        "email-validator>=2.0",
        "python-dateutil>=2.8.2",
        "typing-extensions>=4.8.0",
        "Flask>=2.3",
        "Flask-SQLAlchemy>=3.1",
        "SQLAlchemy>=2.0",
        "Jinja2>=3.1",
        "python-dotenv>=1.0",
        "click>=8.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "mypy>=1.5.0",
            "ruff>=0.1.0",
        ],
    },
)
