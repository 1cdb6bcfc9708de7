"""Walk a resume through the career journey from the command line."""

import argparse
import asyncio
import logging
from typing import Any, List, Optional

from dotenv import load_dotenv

load_dotenv()

from career_journey.core import COMPLETED, ENTRY_GATE, JourneyController, Stage, spec_for
from career_journey.models import AppConfig, StepDescriptor, StepStatus
from career_journey.services import BackendService, JourneyStore, StageExecutorService


QUIT = object()


class PrintNotifier:
    def success(self, message: str) -> None:
        print(f"✅ {message}")

    def failure(self, message: str) -> None:
        print(f"❌ {message}")


async def ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


async def choose_one(options: List[Any], label, required: bool = True) -> Any:
    if not options:
        if required:
            print("   No options available yet.")
            return QUIT
        return None

    for i, option in enumerate(options, 1):
        print(f"   {i}. {label(option)}")
    hint = "number" if required else "number, or Enter to skip"

    while True:
        answer = await ask(f"   Choose ({hint}, q to quit): ")
        if answer.lower() == "q":
            return QUIT
        if not answer and not required:
            return None
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        print("   Invalid choice.")


async def choose_many(options: List[Any]) -> Any:
    if not options:
        return None
    for i, option in enumerate(options, 1):
        print(f"   {i}. {option}")
    answer = await ask("   Skills to focus on (e.g. 1,3; Enter for all, q to quit): ")
    if answer.lower() == "q":
        return QUIT
    picked = [
        options[int(part) - 1]
        for part in answer.replace(" ", "").split(",")
        if part.isdigit() and 1 <= int(part) <= len(options)
    ]
    return picked or None


async def selection_for(step: StepDescriptor) -> Any:
    """Ask the user for the input a decision stage needs."""
    stage = Stage(step.id)
    data = step.data if isinstance(step.data, dict) else {}

    if stage is Stage.SKILL_VALIDATION:
        print("\n🎯 Which career path should your skills be validated against?")
        return await choose_one(
            data.get("career_matches", []),
            lambda r: f"{r.get('role')} ({r.get('match_score', '?')}% match)",
            required=False,
        )
    if stage is Stage.LEARNING_PLAN:
        print("\n📚 Missing skills:")
        return await choose_many(data.get("missing_skills", []))
    if stage is Stage.PROJECT_PLAN:
        print("\n💡 Project ideas:")
        return await choose_one(data.get("projects", []), lambda p: p.get("title"))
    if stage is Stage.PROJECT_BUILD:
        return data.get("project")
    if stage is Stage.INTERVIEW_PREP:
        print("\n💼 Matched jobs:")
        return await choose_one(
            data.get("jobs", []),
            lambda j: f"{j.get('job_title')} @ {j.get('company_name')}",
        )
    return None


async def run_journey(resume_id: str, goal: Optional[str]) -> None:
    """Drive the controller until the journey completes or the user quits."""
    overrides = {"career_goal": goal} if goal else {}
    config = AppConfig(**overrides)
    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    print("=" * 60)
    print("CAREER JOURNEY")
    print("=" * 60)
    print(f"📄 Resume: {resume_id}")
    print(f"🎯 Goal: {config.career_goal or '(from career analysis)'}")
    print("=" * 60)

    async with BackendService(config.backend) as backend:
        store = JourneyStore(backend, resume_id)
        executors = StageExecutorService(backend, resume_id, career_goal=config.career_goal)
        controller = JourneyController(
            store, executors, config.controller, notifier=PrintNotifier()
        )

        last_message = {"text": None}

        def show_status(c: JourneyController) -> None:
            if c.status_message != last_message["text"]:
                last_message["text"] = c.status_message
                print(f"   … {c.status_message}")

        controller.subscribe(show_status)

        try:
            await controller.load()

            while True:
                await controller.wait_idle()
                step = controller.current_step

                if step is None:
                    print("\n❌ Could not load your journey.")
                    break
                if step.id == ENTRY_GATE:
                    print("\n📄 Upload and parse a resume before starting the journey.")
                    break
                if step.id == COMPLETED:
                    print("\n🎉 Career journey complete!")
                    break
                if step.status == StepStatus.COMPLETED:
                    # The stage finished but the follow-up reload did not land.
                    print(f"\n⚠ {controller.status_message}")
                    break

                spec = spec_for(step.id)
                if step.error:
                    answer = await ask(f"\n🔁 Retry {spec.name}? [Y/n] ")
                    if answer.lower().startswith("n"):
                        break

                selection = await selection_for(step) if spec.accepts_selection else None
                if selection is QUIT:
                    break

                print(f"\n▶ {spec.name}")
                await controller.execute_step(step.id, selection)
        finally:
            await controller.aclose()


def main():
    parser = argparse.ArgumentParser(description="AI career journey runner")
    parser.add_argument("--resume-id", required=True, help="Identifier of an uploaded resume")
    parser.add_argument("--goal", default=None, help="Career goal, e.g. 'Data Engineer'")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(run_journey(args.resume_id, args.goal))
    except KeyboardInterrupt:
        print("\nInterrupted.")


if __name__ == "__main__":
    main()
