"""Prompt builder for plan-to-render generation."""

from typing import List

from .types import Settings, StyleReference


class PromptBuilder:
    """Builds render instructions from style references and settings."""

    # Lighting descriptions for each preset
    LIGHTING_DESCRIPTIONS = {
        "studio": "even, soft studio lighting",
        "sunny": "bright natural sunlight with crisp shadows",
        "night": "evening interior lighting with warm artificial sources",
        "dramatic": "dramatic accent lighting with strong shadows and highlights",
        "golden hour": "warm golden hour sunlight",
        "overcast": "diffuse overcast daylight",
    }

    DEFAULT_STYLE = "Generate a modern, minimalist style."

    def build_style_prompt(self, styles: List[StyleReference]) -> str:
        """
        Describe how the style images should steer the render.

        Args:
            styles: Ordered style references

        Returns:
            Style instruction text
        """
        if not styles:
            return self.DEFAULT_STYLE

        if len(styles) == 1 and styles[0].effective_weight:
            weight = styles[0].effective_weight
            return (
                f"The second image is a style reference. Its influence weight is "
                f"{weight:.1f} out of 1.0. Use it to determine the materials, color palette, "
                f"lighting, furniture style, and overall mood for the 3D render. "
                f"A weight of 1.0 means full influence, 0.0 means no influence."
            )

        descriptions = "; ".join(
            f"Style Image #{index + 1} has an influence weight of {style.effective_weight:.1f}/1.0"
            for index, style in enumerate(styles)
        )
        return (
            f"The {len(styles)} images provided after the plan are style references, each with "
            f"a specific influence weight. You MUST blend their artistic styles, materials, "
            f"color palettes, lighting, furniture, and overall mood to create a cohesive 3D "
            f"render. Adhere to the weights: a higher weight means that style should be more "
            f"dominant. The references are: {descriptions}."
        )

    def build_render_prompt(self, styles: List[StyleReference], settings: Settings) -> str:
        """
        Build the full plan-to-render instruction.

        Args:
            styles: Ordered style references sent after the plan image
            settings: Render settings

        Returns:
            Complete prompt string
        """
        if settings.lock_structure:
            geometry_rule = (
                "PRESERVE GEOMETRY: The first image is the 2D floor plan. You MUST NOT alter "
                "the structure, layout, walls, doors, or windows shown in this plan. The final "
                "3D render must be an exact structural match to the 2D plan."
            )
        else:
            geometry_rule = (
                "FOLLOW THE PLAN: The first image is the 2D floor plan. Keep its overall layout, "
                "but minor structural liberties are allowed where they improve the composition."
            )

        lighting = self.LIGHTING_DESCRIPTIONS.get(settings.lighting_preset, settings.lighting_preset)

        prompt_parts = [
            "You are an expert architectural visualization AI. Your task is to convert a 2D "
            "architectural floor plan into an ultra-realistic 3D render.",
            "",
            "RULES:",
            f"1. {geometry_rule}",
            f"2. APPLY STYLE: {self.build_style_prompt(styles)}",
            f"3. SETTINGS: The lighting should be '{settings.lighting_preset}' ({lighting}). "
            f"The final image resolution should be high-quality, suitable for a "
            f"'{settings.resolution}' display. The image aspect ratio MUST be "
            f"{settings.aspect_ratio}. Apply a denoising strength of "
            f"{settings.denoising:.2f} out of 1.0.",
            "4. OUTPUT: Produce a single, high-quality, photorealistic 3D rendering from an "
            "isometric or eye-level perspective.",
        ]

        return "\n".join(prompt_parts)
