[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "autodev"
version = "0.1.0"
description = "Task decomposition, progress tracking, project analysis, agent routing and sandboxed command execution for autonomous development pipelines"
requires-python = ">=3.10"
dependencies = []
keywords = ["automation", "agents", "task-decomposition", "sandbox", "project-analysis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["autodev"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
