"""
Biometric container validation, extraction and merge.

A container is a CBEFF XML document: a root ``BIR`` whose child ``BIR``
elements are the sub-records (one per finger, iris, face...), each typed by
``BDBInfo/Type`` and ``BDBInfo/Subtype``. Merging replaces sub-records of the
same type and subtype and keeps the rest, so a partial biometric update does
not drop modalities that were not resubmitted.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

CBEFF_NAMESPACE = "http://standards.iso.org/iso-iec/19785/-3/ed-2/"

ET.register_namespace("", CBEFF_NAMESPACE)


class BiometricContainerError(Exception):
    """Raised when bytes are not a well-formed biometric container."""


@dataclass
class BiometricRecord:
    """One sub-record of a container."""

    type: str
    subtype: str
    element: ET.Element

    @property
    def key(self) -> Tuple[str, str]:
        return self.type, self.subtype


class BiometricContainerValidator(ABC):
    """Contract for the biometric container collaborator."""

    @abstractmethod
    def validate(self, data: bytes) -> None:
        """Raise BiometricContainerError unless ``data`` is a valid container."""

    @abstractmethod
    def extract(self, data: bytes) -> List[BiometricRecord]:
        """Return the structured sub-records of a container."""

    @abstractmethod
    def merge(self, records: List[BiometricRecord], existing: bytes) -> bytes:
        """Merge ``records`` into the ``existing`` container and serialize the result."""


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


class CbeffXmlValidator(BiometricContainerValidator):
    """CBEFF XML implementation of the container contract."""

    def _parse(self, data: bytes) -> ET.Element:
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise BiometricContainerError(f"Container is not well-formed XML: {e}") from e
        if _local_name(root.tag) != "BIR":
            raise BiometricContainerError(f"Unexpected root element '{_local_name(root.tag)}'")
        return root

    def _records(self, root: ET.Element) -> List[BiometricRecord]:
        records = []
        for position, child in enumerate(root):
            if _local_name(child.tag) != "BIR":
                continue
            info = _child(child, "BDBInfo")
            type_element = _child(info, "Type") if info is not None else None
            if type_element is None or not (type_element.text or "").strip():
                raise BiometricContainerError(f"Sub-record {position} has no BDBInfo/Type")
            subtype_element = _child(info, "Subtype")
            records.append(
                BiometricRecord(
                    type=type_element.text.strip(),
                    subtype=(subtype_element.text or "").strip() if subtype_element is not None else "",
                    element=child,
                )
            )
        return records

    def validate(self, data: bytes) -> None:
        self._records(self._parse(data))

    def extract(self, data: bytes) -> List[BiometricRecord]:
        return self._records(self._parse(data))

    def merge(self, records: List[BiometricRecord], existing: bytes) -> bytes:
        root = self._parse(existing)
        positions = {}
        for record in self._records(root):
            positions[record.key] = list(root).index(record.element)

        for record in records:
            if record.key in positions:
                index = positions[record.key]
                root.remove(root[index])
                root.insert(index, record.element)
            else:
                root.append(record.element)
                positions[record.key] = len(root) - 1

        return ET.tostring(root, encoding="utf-8", xml_declaration=True)
