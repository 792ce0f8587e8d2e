"""specmodel -- Reduce OpenAPI 3 and Swagger 2.0 documents to a service model.

This package fetches an API document (local file or http/https URL), repairs
and converts Swagger 2.0 input, validates the OpenAPI 3 result, and flattens
it into a deterministic, generator-agnostic service model that emitters turn
into code.

Typical usage::

    from specmodel.builder import build_service_model
    from specmodel.parser import load_document

    model = build_service_model(load_document("petstore.yaml"))
    print(model.to_json())

Modules:
    models: Pydantic models shared across the entire package.
    parser: Fetch, detect, preprocess, convert and validate documents.
    builder: Build the service model from a validated document.
    emitters: Emitter interface and entry-point discovery.
    pipeline: End-to-end generation (load, build, emit).
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: Rich rendering of errors and dry-run plans.
"""

__version__ = "0.1.0"
