"""CloudWatch custom metrics."""
