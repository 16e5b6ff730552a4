"""Proposal configuration models.

A raw configuration is classified exactly once into a tagged union of
template variants; everything downstream dispatches on ``kind``.
"""

from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field

from proposal_engine.models.enums import TemplateKind

STAFF_PROFILES = "Staff Profiles"
MEMBER_ASSOCIATION = "Member Association"

IMAGE_FIELD_PREFIX = "Image"
IMAGE_FIELD_SUFFIX = "_af_image"
MAX_MEMBER_IMAGES = 7


def image_field_name(position: int) -> str:
    """Field name of the 1-based image placeholder ``position``."""
    return f"{IMAGE_FIELD_PREFIX}{position}{IMAGE_FIELD_SUFFIX}"


class _TemplateBase(BaseModel):
    name: str = Field(..., description="Section title shown in the TOC")
    file_name: str = Field(..., alias="fileName", description="Template file name")

    class Config:
        populate_by_name = True

    def to_raw(self) -> Dict[str, Any]:
        """Serialize back to the wire shape (camelCase, no ``kind``)."""
        return self.model_dump(by_alias=True, exclude={"kind"}, mode="json")


class PlainTemplate(_TemplateBase):
    """Copied verbatim."""
    kind: Literal[TemplateKind.PLAIN] = TemplateKind.PLAIN
    editable: bool = False


class FormFillTemplate(_TemplateBase):
    """Named text fields are filled, then the form is flattened."""
    kind: Literal[TemplateKind.FORM_FILL] = TemplateKind.FORM_FILL
    editable: bool = True
    field_values: Dict[str, str] = Field(default_factory=dict, alias="fieldValues")


class ImageFillTemplate(_TemplateBase):
    """Named fields are replaced by images drawn over the flattened form."""
    kind: Literal[TemplateKind.IMAGE_FILL] = TemplateKind.IMAGE_FILL
    editable: bool = True
    has_images: bool = Field(True, alias="hasImages")
    image_mapping: Dict[str, str] = Field(default_factory=dict, alias="imageMapping")
    field_values: Dict[str, str] = Field(default_factory=dict, alias="fieldValues")


class MemberAssociationTemplate(_TemplateBase):
    """Member logos resolved by name from the section's image directory."""
    kind: Literal[TemplateKind.MEMBER_ASSOCIATION] = TemplateKind.MEMBER_ASSOCIATION
    editable: bool = True
    members: List[str] = Field(default_factory=list)

    def to_raw(self) -> Dict[str, Any]:
        raw = super().to_raw()
        # Editable entries only validate with a fieldValues object
        raw["fieldValues"] = {}
        return raw


class StaffMember(BaseModel):
    name: str
    file_name: str = Field(..., alias="fileName")

    class Config:
        populate_by_name = True


class StaffProfilesTemplate(_TemplateBase):
    """A shared intro page followed by one page-set per staff member."""
    kind: Literal[TemplateKind.STAFF_PROFILES] = TemplateKind.STAFF_PROFILES
    editable: bool = False
    staffs: List[StaffMember] = Field(default_factory=list)


TemplateSpec = Union[
    PlainTemplate,
    FormFillTemplate,
    ImageFillTemplate,
    MemberAssociationTemplate,
    StaffProfilesTemplate,
]


class TOCEntry(BaseModel):
    """One table-of-contents line; ``page`` is the content page number."""
    title: str
    page: int = Field(..., ge=1)


def _string_mapping(values: Any) -> Dict[str, str]:
    if not isinstance(values, dict):
        return {}
    return {str(key): "" if value is None else str(value) for key, value in values.items()}


def classify_template(raw: Dict[str, Any]) -> TemplateSpec:
    """
    Decide the variant of a (validated) raw template entry.

    Priority: staff profiles, member association, image fill,
    form fill, plain.
    """
    name = raw["name"]
    file_name = raw["fileName"]
    editable = raw.get("editable") is True
    field_values = raw.get("fieldValues")

    if name == STAFF_PROFILES and raw.get("staffs"):
        return StaffProfilesTemplate(
            name=name,
            file_name=file_name,
            editable=editable,
            staffs=[StaffMember(**staff) for staff in raw["staffs"]],
        )

    if name == MEMBER_ASSOCIATION and (
        isinstance(raw.get("members"), list) or isinstance(field_values, list)
    ):
        members = raw.get("members")
        if not isinstance(members, list):
            members = field_values
        return MemberAssociationTemplate(
            name=name,
            file_name=file_name,
            members=[str(member) for member in members],
        )

    if editable and (raw.get("hasImages") is True or isinstance(field_values, list)):
        image_mapping = _string_mapping(raw.get("imageMapping"))
        if isinstance(field_values, list):
            # Positional images: first entry fills Image1_af_image, and so on
            for position, image in enumerate(field_values, start=1):
                image_mapping.setdefault(image_field_name(position), str(image))
        return ImageFillTemplate(
            name=name,
            file_name=file_name,
            image_mapping=image_mapping,
            field_values=_string_mapping(field_values),
        )

    if editable:
        return FormFillTemplate(
            name=name,
            file_name=file_name,
            field_values=_string_mapping(field_values),
        )

    return PlainTemplate(name=name, file_name=file_name)


class ProposalConfig(BaseModel):
    """A validated, classified proposal configuration."""
    company: str = Field(..., alias="Company", min_length=1)
    templates: List[TemplateSpec] = Field(..., alias="Templates", min_length=1)

    class Config:
        populate_by_name = True

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "ProposalConfig":
        """Build from a normalized config that passed validation."""
        return cls(
            company=raw["Company"],
            templates=[classify_template(template) for template in raw["Templates"]],
        )

    def to_raw(self) -> Dict[str, Any]:
        """Snapshot stored alongside each proposal version."""
        return {
            "Company": self.company,
            "Templates": [template.to_raw() for template in self.templates],
        }

    @property
    def referenced_files(self) -> List[str]:
        """Every template file name the config points at, staff files included."""
        files: List[str] = []
        for template in self.templates:
            files.append(template.file_name)
            if isinstance(template, StaffProfilesTemplate):
                files.extend(staff.file_name for staff in template.staffs)
        return files
