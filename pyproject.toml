[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sport2crsf"
version = "0.1.0"
description = "Bridge FrSky S.PORT telemetry to CRSF telemetry frames"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["frsky", "s.port", "crsf", "telemetry", "rc", "serial", "protocol"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: Communications",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
sport2crsf = "sport2crsf.bridge:main"

[tool.hatch.build.targets.wheel]
packages = ["sport2crsf"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
