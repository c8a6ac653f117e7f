[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cukefmt"
version = "0.1.0"
description = "Result formatters for Gherkin test runs: progress, pretty, JUnit XML, Cucumber JSON and event streams."
requires-python = ">=3.10"
dependencies = []
keywords = ["gherkin", "cucumber", "bdd", "formatter", "junit", "reporting"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing :: BDD",
]

[project.optional-dependencies]
test = [
    "pytest",
    "freezegun",
]

[tool.hatch.build.targets.wheel]
packages = ["cukefmt"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
