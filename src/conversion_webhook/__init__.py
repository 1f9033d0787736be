"""
AivenApplication conversion webhook - CRD version conversion for Kubernetes.

This service implements the CustomResourceDefinition conversion webhook for
``aivenapplications.aiven.nais.io`` resources with:
- Batch conversion of stored objects between v1 and v2
- Relocation of ``spec.secretName`` into the per-service sub-resources
- All-or-nothing batch semantics with Kubernetes Status failures
- Structured logging, Prometheus metrics and OpenTelemetry tracing
"""

__version__ = "0.1.0"
