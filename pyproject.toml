[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pennsieve_queries"
version = "0.1.0"
description = "Query layer for upload manifests in a DynamoDB table store and for dataset, contributor, release and feature-flag records in PostgreSQL."
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "queries", "manifest", "datasets", "dynamodb", "postgres"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Database :: Front-Ends",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pennsieve_queries"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
