[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cooperos"
version = "0.1.0"
description = "A small simulated kernel with cooperative threads, a FIFO scheduler, an alarm clock and synchronization primitives"
requires-python = ">=3.10"
dependencies = []
keywords = ["kernel", "threads", "scheduler", "semaphore", "condition-variable", "simulation", "teaching"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Operating System Kernels",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cooperos = "cooperos.main:main"

[tool.hatch.build.targets.wheel]
packages = ["cooperos"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
