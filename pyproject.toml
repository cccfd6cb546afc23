[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "unibus"
version = "0.1.0"
description = "A small message bus client for publishing and consuming JSON events over RabbitMQ"
requires-python = ">=3.10"
keywords = ["rabbitmq", "amqp", "message-bus", "events", "pubsub", "queue"]
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
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pika>=1.3",
    "python-dotenv>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
unibus = "unibus.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["unibus"]

[tool.hatch.build.targets.sdist]
include = ["unibus", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
testpaths = ["tests"]
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
