[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memberdesk"
version = "0.1.0"
description = "Member register, posts and CSV imports of members and bank transactions for associations, stored in SQLite"
requires-python = ">=3.10"
keywords = ["members", "association", "csv import", "bank transactions", "sqlite", "migrations"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Office/Business :: Groupware",
]
dependencies = [
    "flask",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
memberdesk-migrate = "memberdesk.schema:main"
memberdesk-scaffold = "memberdesk.scaffold:main"

[tool.hatch.build.targets.wheel]
packages = ["memberdesk"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]
