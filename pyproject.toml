[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "httplogproxy"
version = "0.1.0"
description = "Reverse HTTP proxy that records every request and response, with a web dashboard to browse the logs"
requires-python = ">=3.10"
keywords = ["http", "proxy", "reverse-proxy", "logging", "debugging", "dashboard", "wsgi"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Software Development :: Debuggers",
]
dependencies = [
    "flask",
    "werkzeug",
    "httpx",
    "pyyaml",
    "brotli",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
httplogproxy = "httplogproxy.app:main"

[tool.hatch.build.targets.wheel]
packages = ["httplogproxy"]

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
ignore_missing_imports = true
