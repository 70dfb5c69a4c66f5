"""
Rule builder metadata endpoints.
"""

from fastapi import APIRouter, HTTPException

from segmentation import field_table, operators_for
from segmentation.fields import ENUM, LEAD_STATUS_OPTIONS, STATUS_OPTIONS

router = APIRouter(prefix="/rules", tags=["Rules"])

ENUM_OPTIONS = {
    "status": STATUS_OPTIONS,
    "lead_status": LEAD_STATUS_OPTIONS,
}


@router.get("/fields/{context}")
async def get_fields(context: str):
    """
    List the fields a rule builder offers for a call site
    ("segment", "smart_list" or "workflow"), with the operators valid for each.
    """
    try:
        table = field_table(context)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown rule context '{context}'")

    fields = []
    for spec in table.values():
        entry = {
            "value": spec.name,
            "label": spec.label,
            "type": spec.field_type,
            "operators": list(operators_for(spec.field_type)),
        }
        if spec.field_type == ENUM and spec.name in ENUM_OPTIONS:
            entry["options"] = list(ENUM_OPTIONS[spec.name])
        fields.append(entry)

    return {"context": context, "fields": fields}
