[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gpuid"
version = "0.1.0"
description = "Building blocks for collecting GPU serial numbers from Kubernetes pods: nvidia-smi parsing, a small Kubernetes client, node provider IDs, metrics and a health server"
requires-python = ">=3.10"
keywords = ["kubernetes", "gpu", "nvidia", "nvidia-smi", "inventory", "prometheus"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Hardware",
]
dependencies = [
    "requests",
    "websocket-client",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gpuid"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
