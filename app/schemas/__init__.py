import enum


class CaseInsensitiveStringEnum(str, enum.Enum):
    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            # attempt case-insensitive lookup
            for member in cls:
                if member.value.lower() == value.lower():
                    return member

        # fallback to default behavior if lookup fails or if value is not a string
        return None
