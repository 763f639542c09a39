"""Pipeweaver: Airflow DAG generation from pipeline definitions in Git.

This package provides:
- GitHub push webhook handling and a bounded ingestion queue
- A per-event workflow that branches, writes generated DAGs, commits,
  pushes and opens a pull request
- YAML pipeline definition parsing and Jinja2 DAG rendering
- Git working tree and GitHub pull request clients
"""
