"""
Person model: the record type imported by the people job.
"""

from pydantic import BaseModel, ConfigDict


class Person(BaseModel):
    """
    A person read from the input file and written to the people table.

    Frozen, so instances compare and hash by value.

    Attributes:
        first_name: Given name
        last_name: Family name
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "first_name": "Jane",
                "last_name": "Doe",
            }
        },
    )

    first_name: str
    last_name: str

    def __str__(self) -> str:
        return f"firstName: {self.first_name}, lastName: {self.last_name}"
