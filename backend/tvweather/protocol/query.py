"""XML query builder for the Trafikverket data API.

Every request is one document::

    <REQUEST>
      <LOGIN authenticationkey="..."/>
      <QUERY objecttype="WeatherMeasurepoint" schemaversion="2.1">
        <FILTER><EQ name="Id" value="1211"/></FILTER>
        <INCLUDE>Id</INCLUDE>
      </QUERY>
    </REQUEST>

Filters are plain attribute comparisons; the provider evaluates LIKE values
as regular expressions, so a name prefix search is ``^prefix``.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from .constants import SCHEMA_VERSIONS, ObjectType


@dataclass(frozen=True)
class Filter:
    """A single filter operator element (EQ, LIKE, WITHIN)."""
    operator: str
    name: str
    value: str
    attributes: dict[str, str] = field(default_factory=dict)

    def to_element(self) -> ET.Element:
        attrs = {"name": self.name}
        if "shape" in self.attributes:
            attrs["shape"] = self.attributes["shape"]
        attrs["value"] = self.value
        for key, val in self.attributes.items():
            if key != "shape":
                attrs[key] = val
        return ET.Element(self.operator, attrs)


def eq(name: str, value: str) -> Filter:
    return Filter("EQ", name, str(value))


def like_prefix(name: str, prefix: str) -> Filter:
    return Filter("LIKE", name, f"^{prefix}")


def within_radius(name: str, lat: float, lon: float, radius: str) -> Filter:
    """Circular region around a point. The provider expects "<lon> <lat>"."""
    return Filter(
        "WITHIN", name, f"{lon} {lat}",
        {"shape": "center", "radius": str(radius)},
    )


@dataclass(frozen=True)
class Query:
    """One QUERY element: object type, filter and field selectors."""
    objecttype: ObjectType
    filter: Filter
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)

    @property
    def schemaversion(self) -> str:
        return SCHEMA_VERSIONS[self.objecttype]


def build_request(token: str, query: Query) -> str:
    """Serialize a query into the provider's XML request body."""
    root = ET.Element("REQUEST")
    ET.SubElement(root, "LOGIN", {"authenticationkey": token})
    q = ET.SubElement(root, "QUERY", {
        "objecttype": query.objecttype.value,
        "schemaversion": query.schemaversion,
    })
    flt = ET.SubElement(q, "FILTER")
    flt.append(query.filter.to_element())
    for name in query.include:
        ET.SubElement(q, "INCLUDE").text = name
    for name in query.exclude:
        ET.SubElement(q, "EXCLUDE").text = name
    return ET.tostring(root, encoding="unicode")
