"""
Environment variable interpolation for configuration files.
"""
import re
from typing import List, Mapping

# $$ escapes a literal dollar; otherwise ${NAME}, ${NAME:-default} or ${NAME:+value}
_PLACEHOLDER = re.compile(r'\$\$|\$\{([A-Za-z_][A-Za-z0-9_]*)(?::([-+])([^}]*))?\}')


class EnvironmentInterpolator:
    """
    Substitutes ${VAR} placeholders in configuration text.
    Supports ${VAR}, ${VAR:-default}, ${VAR:+value} and $$ for a literal dollar.
    """

    @staticmethod
    def interpolate(template: str, context: Mapping[str, str]) -> str:
        """
        Replaces every placeholder in the template using the given context.

        :param template: Text containing placeholders.
        :param context: Variables available for substitution.
        :return: The interpolated text.
        :raises KeyError: If plain ${VAR} placeholders reference unset variables.
            All missing names are reported at once.
        """
        missing: List[str] = []

        def replace(match: re.Match) -> str:
            if match.group(0) == "$$":
                return "$"
            name, modifier, alternative = match.group(1), match.group(2), match.group(3)
            value = context.get(name)
            if modifier == "-":
                return value if value else alternative
            if modifier == "+":
                return alternative if value else ""
            if value is None:
                missing.append(name)
                return ""
            return value

        result = _PLACEHOLDER.sub(replace, template)
        if missing:
            raise KeyError(f"Variables not set: {', '.join(sorted(set(missing)))}")
        return result
