[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "searchkube"
version = "0.1.0"
description = "Build Kubernetes manifests for OpenSearch clusters: stateful sets, services, the bootstrap pod, the security config job and node configuration."
requires-python = ">=3.10"
dependencies = []
keywords = ["opensearch", "kubernetes", "statefulset", "manifests", "cluster"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["searchkube"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
