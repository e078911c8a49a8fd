"""Raw measurement table schemas."""

from __future__ import annotations

from kelper.schemas import RawDataset, RelationshipKey

# Columns every compiled raw table carries
KEY_COLUMNS: tuple[str, ...] = ("location", "reference", "id")

# Measurement columns per raw dataset (besides KEY_COLUMNS)
RAW_SCHEMAS: dict[RawDataset, tuple[str, ...]] = {
    RawDataset.LENGTH_WEIGHT_STIPE: ("lengthStipe", "weightStipe"),
    RawDataset.LENGTH_WEIGHT_FROND: ("lengthStipe", "weightFrond"),
    RawDataset.WEIGHT_AREA_FROND: ("depth", "weightFrond", "areaFrond"),
    RawDataset.DEPTH_MAX_STIPE: ("depth", "maxStipeLen"),
    RawDataset.DEPTH_FAI: ("depth", "FAI"),
    RawDataset.LENGTH_DENSITY: ("habitat", "lengthStipe", "NperSqM"),
    RawDataset.DEPTH_DENSITY: ("depth", "NperSqM", "N_subcanopy", "N_recruits"),
}

# (required, optional) raw datasets feeding each relationship
SourceSpec = tuple[tuple[RawDataset, ...], tuple[RawDataset, ...]]

RELATIONSHIP_SOURCES: dict[RelationshipKey, SourceSpec] = {
    RelationshipKey.STIPE_WEIGHT: ((RawDataset.LENGTH_WEIGHT_STIPE,), ()),
    RelationshipKey.STIPE_FROND_WEIGHT: ((RawDataset.LENGTH_WEIGHT_FROND,), ()),
    RelationshipKey.FROND_AREA: ((RawDataset.WEIGHT_AREA_FROND,), ()),
    RelationshipKey.FROND_WEIGHT: ((RawDataset.WEIGHT_AREA_FROND,), ()),
    RelationshipKey.CANOPY_HEIGHT: ((RawDataset.DEPTH_MAX_STIPE,), ()),
    RelationshipKey.FROND_AREA_INDEX: ((RawDataset.DEPTH_FAI,), ()),
    RelationshipKey.CANOPY_DENSITY: ((RawDataset.LENGTH_DENSITY,), (RawDataset.DEPTH_DENSITY,)),
}
