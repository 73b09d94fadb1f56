"""Subject modes."""

from enum import Enum


class SubjectMode(Enum):
    """Selects the instruction block injected into prompts."""

    AUTO = "auto"
    MATH = "math"
    PORTUGUESE = "portuguese"
    ENGLISH = "english"
    LOGIC = "logic"

    @classmethod
    def parse(cls, value: "str | SubjectMode | None") -> "SubjectMode":
        """Parse a mode name, falling back to AUTO for None.

        Raises:
            ValueError: Unknown mode name.
        """
        if value is None:
            return cls.AUTO
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(
                f"Unknown subject mode '{value}' (choose from: {choices})"
            ) from None

    @property
    def instruction(self) -> str:
        """Instruction text for this mode. Empty for AUTO."""
        return _INSTRUCTIONS[self]


_INSTRUCTIONS: dict[SubjectMode, str] = {
    SubjectMode.AUTO: "",
    SubjectMode.MATH: (
        "Subject: MATHEMATICS. Show every calculation step, check the result "
        "by substituting values back and pay attention to units."
    ),
    SubjectMode.PORTUGUESE: (
        "Subject: PORTUGUESE. Quote the grammar rule that applies, give an "
        "example when useful and watch agreement and verb government."
    ),
    SubjectMode.ENGLISH: (
        "Subject: ENGLISH. Respond in English, translate key terms and name "
        "the verb tenses and grammatical structures involved."
    ),
    SubjectMode.LOGIC: (
        "Subject: LOGICAL REASONING. Explain the pattern you found, show the "
        "chain of reasoning and eliminate the wrong alternatives."
    ),
}
