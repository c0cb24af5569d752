[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shortlink"
version = "0.1.0"
description = "URL shortener with a REST API, click analytics, URL monitoring and a command-line admin tool"
requires-python = ">=3.10"
keywords = ["url-shortener", "short-links", "redirect", "analytics", "flask", "sqlite"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
url-shortener = "shortlink.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["shortlink"]

[tool.pytest.ini_options]
addopts = "-ra"
