"""
dynamo-codegen: schema-driven generator of typed DynamoDB data-access packages.
"""

__version__ = "0.1.0"
