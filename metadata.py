import json
import pathlib
from typing import Any, Dict, List, Sequence

import pandas as pd

from models import Combination, Component, MetadataTemplate

# Constants
NONE_VALUE = "none"
ID_TOKEN = "{}"


def extract_attributes(
    components: Sequence[Component], combination: Combination
) -> List[Dict[str, str]]:
    """List the traits of a combination, skipping items without a value."""
    attributes = []
    for component, item in zip(components, combination):
        if item.trait_value is not None:
            attributes.append(
                {"trait_type": component.trait_type, "value": item.trait_value}
            )
    return attributes


def build_metadata(
    template: MetadataTemplate,
    doll_id: int,
    combination: Combination,
    components: Sequence[Component],
) -> Dict[str, Any]:
    """Create the metadata record of one doll.

    The id replaces ``{}`` in the name and image templates; a name without
    the token gets ``#id`` appended.
    """
    if ID_TOKEN in template.name:
        name = template.name.replace(ID_TOKEN, str(doll_id))
    else:
        name = f"{template.name} #{doll_id}"

    return {
        "name": name,
        "description": template.description,
        "image": template.image.replace(ID_TOKEN, str(doll_id)),
        "id": doll_id,
        "source": template.source,
        "parts": [item.index for item in combination],
        "attributes": extract_attributes(components, combination),
    }


def save_metadata(records: List[Dict[str, Any]], path: pathlib.Path) -> None:
    """Save all records as one JSON list."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, ensure_ascii=False)


def write_item_files(records: List[Dict[str, Any]], directory: pathlib.Path) -> pathlib.Path:
    """Write one JSON metadata file per doll, named by its id."""
    directory = pathlib.Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    for record in records:
        json_file = directory / str(record["id"])
        with open(json_file, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, ensure_ascii=False)

    return directory


def metadata_frame(
    records: List[Dict[str, Any]], components: Sequence[Component]
) -> pd.DataFrame:
    """One row per doll, one column per trait type."""
    trait_types = [component.trait_type for component in components]
    rows = []
    for record in records:
        row = {trait_type: NONE_VALUE for trait_type in trait_types}
        for attribute in record["attributes"]:
            row[attribute["trait_type"]] = attribute["value"]
        rows.append(row)

    df = pd.DataFrame(rows, columns=list(dict.fromkeys(trait_types)))
    df.index = [record["id"] for record in records]
    df.index.name = "id"
    return df
