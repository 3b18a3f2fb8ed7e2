[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "voidcloud"
version = "0.0.1"
description = "Command-line access to the Void Cloud Platform: log in and deploy game builds."
requires-python = ">=3.10"
keywords = ["deploy", "cloud", "games", "cli", "blake3", "incremental-upload"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "requests>=2.28",
    "platformdirs>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
void-cloud = "voidcloud.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["voidcloud"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
