"""
Property table reader.

Maps, tilesets and layers all carry the same <properties> block, so every
sub-parser shares this helper.
"""

import xml.etree.ElementTree as ET
from typing import Dict, Optional
from .errors import MalformedPropertyError
from .logging_config import get_logger

logger = get_logger('properties')

CLASS_PROPERTY_TYPE = "class"


def read_properties(
    element: Optional[ET.Element],
    strict: bool = True,
    owner: str = "map",
    prefix: str = ""
) -> Dict[str, str]:
    """
    Read a <properties> block into a string dictionary.

    XML format:
        <properties>
            <property name="music" value="level1.ogg"/>
            <property name="intro">Multi-line
        text</property>
            <property name="spawn" type="class" propertytype="Spawn">
                <properties>
                    <property name="hp" type="int" value="3"/>
                </properties>
            </property>
        </properties>

    Only direct <property> children are read. Tiled writes multi-line string
    values as element text, so text is used when the value attribute is
    absent. Class-typed properties hold their members in a nested block; the
    members are flattened into dotted keys ("spawn.hp" -> "3"). Duplicate
    names: the last one wins.

    Args:
        element: The <properties> element, or None
        strict: If True, a property without name or value raises;
                otherwise it is skipped with a warning
        owner: Description of the element owning the block, for messages
        prefix: Key prefix for members of a class-typed property

    Returns:
        Dictionary of property name -> value

    Raises:
        MalformedPropertyError: If strict and a property lacks a name or value
    """
    output: Dict[str, str] = {}
    if element is None:
        return output

    for prop in element.findall('property'):
        key = prop.get('name')

        if key is not None and prop.get('type') == CLASS_PROPERTY_TYPE:
            members = read_properties(prop.find('properties'), strict, owner, prefix=f"{prefix}{key}.")
            if not members:
                logger.debug(f"Class property '{prefix}{key}' on {owner} has no overridden members")
            output.update(members)
            continue

        value = prop.get('value')
        if value is None and prop.text is not None and prop.text.strip():
            value = prop.text

        if key is None or value is None:
            missing = "name" if key is None else "value"
            message = f"Property on {owner} is missing its '{missing}' attribute: {ET.tostring(prop, encoding='unicode').strip()}"
            if strict:
                raise MalformedPropertyError(message)
            logger.warning(f"Skipping malformed property: {message}")
            continue

        output[f"{prefix}{key}"] = value

    return output
