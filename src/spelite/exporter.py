# Spelite – Bilingual spell knowledge base with hybrid search
# Copyright (c) 2026 4rce.com Digital Technologies GmbH. All rights reserved.
# Non-commercial use only. Commercial licensing: info@4rce.com

"""
Ontology export: the whole triplet store as JSON-LD or RDF/XML.

"dnd:" prefixes map onto BASE_URI. Localized literals carry their language
tag; multi-valued predicates become lists (JSON-LD) or repeated elements
(RDF/XML).
"""
import json
import xml.etree.ElementTree as ET
from typing import Any, Iterable, Optional

from .store import Triplet, TripletStore, from_storage

BASE_URI = "http://spelite.app/ontology/dnd#"
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RDFS_NS = "http://www.w3.org/2000/01/rdf-schema#"
XSD_NS = "http://www.w3.org/2001/XMLSchema#"
XML_NS = "http://www.w3.org/XML/1998/namespace"

PREFIX = "dnd:"

ET.register_namespace("rdf", RDF_NS)
ET.register_namespace("rdfs", RDFS_NS)
ET.register_namespace("dnd", BASE_URI)
ET.register_namespace("xsd", XSD_NS)


def map_to_uri(local: str) -> str:
    """Expand the dnd: prefix onto BASE_URI; anything else is returned unchanged."""
    if local.startswith(PREFIX):
        return BASE_URI + local[len(PREFIX):]
    return local


def normalize_value(predicate: str, value: Any) -> Any:
    """Stored 0/1 back to bool for boolean predicates only; levels stay numbers."""
    return from_storage(predicate, value)


def _local_name(predicate: str) -> str:
    return predicate[len(PREFIX):] if predicate.startswith(PREFIX) else predicate


def _group_by_subject(triplets: Iterable[Triplet]) -> dict[str, list[Triplet]]:
    subjects: dict[str, list[Triplet]] = {}
    for t in triplets:
        subjects.setdefault(t.subject, []).append(t)
    return subjects


class OntologyExporter:
    def __init__(self, store: Optional[TripletStore] = None):
        self.store = store

    def triplets(self) -> list[Triplet]:
        if self.store is None:
            return []
        return self.store.all_triplets()

    def export_jsonld(self, indent: Optional[int] = 2) -> str:
        nodes: dict[str, dict] = {}
        for t in self.triplets():
            node = nodes.setdefault(t.subject, {"@id": map_to_uri(t.subject)})
            prop = _local_name(t.predicate)
            value = normalize_value(t.predicate, t.object)

            if t.language:
                current = node.setdefault(prop, [])
                if not isinstance(current, list):
                    current = node[prop] = [current]
                current.append({"@value": value, "@language": t.language})
            elif prop in node:
                if not isinstance(node[prop], list):
                    node[prop] = [node[prop]]
                node[prop].append(value)
            else:
                node[prop] = value

        document = {
            "@context": {
                "@vocab": BASE_URI,
                "rdf": RDF_NS,
                "rdfs": RDFS_NS,
                "xsd": XSD_NS,
            },
            "@graph": list(nodes.values()),
        }
        return json.dumps(document, indent=indent, ensure_ascii=False)

    def export_rdfxml(self) -> str:
        root = ET.Element(f"{{{RDF_NS}}}RDF")
        for subject, triplets in _group_by_subject(self.triplets()).items():
            description = ET.SubElement(
                root, f"{{{RDF_NS}}}Description",
                {f"{{{RDF_NS}}}about": map_to_uri(subject)},
            )
            for t in triplets:
                self._append_property(description, t)

        body = ET.tostring(root, encoding="unicode")
        return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}'

    @staticmethod
    def _append_property(parent: ET.Element, t: Triplet):
        if t.predicate.startswith(PREFIX):
            tag = f"{{{BASE_URI}}}{_local_name(t.predicate)}"
        else:
            tag = t.predicate
        value = normalize_value(t.predicate, t.object)
        el = ET.SubElement(parent, tag)

        if t.language:
            el.set(f"{{{XML_NS}}}lang", t.language)
            el.text = str(value)
        elif isinstance(value, str) and value.startswith(PREFIX):
            el.set(f"{{{RDF_NS}}}resource", map_to_uri(value))
        elif isinstance(value, bool):
            el.set(f"{{{RDF_NS}}}datatype", f"{XSD_NS}boolean")
            el.text = "true" if value else "false"
        elif isinstance(value, int):
            el.set(f"{{{RDF_NS}}}datatype", f"{XSD_NS}integer")
            el.text = str(value)
        elif isinstance(value, float):
            el.set(f"{{{RDF_NS}}}datatype", f"{XSD_NS}decimal")
            el.text = repr(value)
        else:
            el.text = str(value)

    def export(self, fmt: str = "jsonld") -> str:
        if fmt == "jsonld":
            return self.export_jsonld()
        if fmt in ("rdfxml", "rdf"):
            return self.export_rdfxml()
        raise ValueError(f"Unsupported export format: {fmt}")
