[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "azkarp"
version = "0.1.0"
description = "In-memory Azure API fakes and node-claim controllers for node autoscaling on Kubernetes"
requires-python = ">=3.11"
keywords = ["kubernetes", "autoscaling", "azure", "nodeclaim", "fakes", "controllers"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: Software Development :: Testing :: Mocking",
]
dependencies = [
    "cachetools>=5.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["azkarp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
