"""Pytest configuration for all tests."""

import pytest

SAMPLE_DEFINITION_YAML = b"""\
pipeline:
  name: orders_daily
  version: 1.0
  domain: sales
  description: Copy orders from Postgres into Snowflake
  owners:
    - name: data-team
      email: data-team@example.com
  schedule:
    type: cron
    expression: "0 * * * *"
  steps:
    - name: extract_orders
      type: ingestion
      inputs:
        - name: orders
          type: postgres
          host: db.internal
          database: shop
          table_name: orders
      outputs:
        - name: orders_raw
          type: snowflake
          database: analytics
          table_name: orders_raw
      notifications:
        on_failure:
          - method: email
            recipients: [oncall@example.com]
    - name: publish
      type: export
      depends_on: [extract_orders]
      outputs:
        - name: export
          kind: s3
          path: s3://bucket/orders/
resources:
  compute_cluster: small
"""


@pytest.fixture
def sample_definition_yaml() -> bytes:
    return SAMPLE_DEFINITION_YAML
