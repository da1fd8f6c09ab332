"""
Form Definitions

Built-in templates for the supported government forms. Every load returns
a fresh FormSchema, so conversations never share field values.

Usage:
    from services.form.definitions import BuiltinFormDefinitions

    schema = BuiltinFormDefinitions().load_schema("passport")
"""

import copy
from typing import Any, Dict, List

from services.ai.models import FormSchema
from utils.exceptions import FormNotFoundError
from utils.sanitize import normalize_form_code


def _field(key: str, label: str, required: bool = True, type: str = "text", options=None) -> Dict[str, Any]:
    data = {"fieldKey": key, "label": label, "required": required, "type": type}
    if options:
        data["options"] = list(options)
    return data


_PERSONAL = {
    "id": 1,
    "title": "Personal Details",
    "fields": [
        _field("fullName", "Full Name"),
        _field("dateOfBirth", "Date of Birth"),
        _field("gender", "Gender", type="radio", options=["Male", "Female", "Other"]),
        _field("placeOfBirth", "Place of Birth"),
    ],
}

_CONTACT = {
    "id": 2,
    "title": "Contact Information",
    "fields": [
        _field("email", "Email"),
        _field("phone", "Phone Number"),
        _field("address", "Address"),
        _field("pinCode", "Pin Code"),
    ],
}

_FAMILY = {
    "id": 3,
    "title": "Family Details",
    "fields": [
        _field("fatherName", "Father's Name"),
        _field("motherName", "Mother's Name"),
        _field("spouseName", "Spouse Name", required=False),
    ],
}

FORM_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "passport": {
        "title": "Passport Application Form",
        "sections": [
            _PERSONAL,
            _CONTACT,
            _FAMILY,
            {
                "id": 4,
                "title": "Required Documents",
                "fields": [
                    _field("addressProof", "Address Proof Type", type="radio",
                           options=["Aadhaar Card", "Voter ID", "Utility Bill"]),
                    _field("previousPassport", "Previous Passport Number", required=False),
                ],
            },
        ],
    },
    "aadhaar": {
        "title": "Aadhaar Card Application Form",
        "sections": [
            _PERSONAL,
            _CONTACT,
            {
                "id": 3,
                "title": "Family Details",
                "fields": [
                    _field("guardianName", "Father's or Guardian's Name"),
                ],
            },
        ],
    },
    "voterid": {
        "title": "Voter ID Application Form",
        "sections": [
            _PERSONAL,
            {
                "id": 2,
                "title": "Contact Information",
                "fields": [
                    _field("address", "Address"),
                    _field("constituency", "Assembly Constituency"),
                    _field("phone", "Phone Number", required=False),
                ],
            },
            {
                "id": 3,
                "title": "Family Details",
                "fields": [
                    _field("relativeName", "Relative's Name"),
                    _field("relationType", "Relation Type", type="radio",
                           options=["Father", "Mother", "Husband", "Wife"]),
                ],
            },
        ],
    },
}


class BuiltinFormDefinitions:
    """FormDefinitionSource backed by the templates above."""

    def available_forms(self) -> List[Dict[str, str]]:
        return [{"form_code": code, "title": t["title"]} for code, t in FORM_TEMPLATES.items()]

    def load_schema(self, form_code: str) -> FormSchema:
        """
        Fresh schema for ``form_code``.

        Raises:
            FormNotFoundError: Unknown form code
        """
        code = normalize_form_code(form_code)
        template = FORM_TEMPLATES.get(code)
        if template is None:
            raise FormNotFoundError(form_code)
        return FormSchema.from_dict(copy.deepcopy(template), form_code=code)
