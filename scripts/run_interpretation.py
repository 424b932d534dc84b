import asyncio
import json
import os
import sys

sys.path.insert(0, ".")

from projectforge.stages import interpret_project


async def main():
    project_idea = os.getenv(
        "INTERPRETATION_TEST_IDEA",
        "A mobile app that helps community gardens coordinate watering schedules, share surplus "
        "harvests with neighbours and track which plots need attention. Volunteers check in by "
        "scanning a QR code at the garden gate.",
    )
    special_instructions = os.getenv("INTERPRETATION_TEST_INSTRUCTIONS") or None

    interpretation = await interpret_project(project_idea, special_instructions)

    print("TITLE:", interpretation.title)
    print("COMPLEXITY:", interpretation.complexity_level.value)
    print("\nINTERPRETATION:")
    print(json.dumps(interpretation.model_dump(mode="json"), indent=2)[:1500])


if __name__ == "__main__":
    asyncio.run(main())
