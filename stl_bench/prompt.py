"""
LLM prompt templates for description-to-STL generation.

Kept as a standalone module so the prompts are trivially editable without
touching any pipeline logic.
"""


def build_system_prompt() -> str:
    return " ".join([
        "You are an expert CAD assistant that emits valid ASCII STL files.",
        "Output only the raw ASCII STL content. Do not include code fences or commentary.",
        'Use millimeters as the implied unit. Ensure the file starts with "solid <name>" '
        'and ends with "endsolid <name>".',
        "Keep triangle count modest but sufficient to represent the described shape. "
        "Avoid degenerate triangles.",
    ])


def build_user_prompt(description: str, solid_name: str) -> str:
    return "\n".join([
        f'Generate an ASCII STL for a 3D model described as: "{description}".',
        f"Use the STL solid name: {solid_name}.",
        "Return only the STL text. No explanations.",
    ])
