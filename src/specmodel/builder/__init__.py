"""Service model builder -- reduce a validated document to a :class:`~specmodel.models.ServiceModel`.

Typical usage::

    from specmodel.builder import build_service_model
    from specmodel.models import BuildOptions
    from specmodel.parser import load_document

    doc = load_document("petstore.yaml")
    model = build_service_model(doc, BuildOptions(include_tags=["read"]))
"""

from specmodel.builder.filters import EndpointFilter
from specmodel.builder.schemas import extract_schemas
from specmodel.builder.service import build_service_model

__all__ = ["EndpointFilter", "build_service_model", "extract_schemas"]
