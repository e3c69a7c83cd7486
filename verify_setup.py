#!/usr/bin/env python3
"""Verify that ComicGen is installed correctly and its components load."""

import sys


def verify_setup():
    """Run verification checks on the ComicGen setup."""
    print("ComicGen Setup Verification")
    print("=" * 40)
    errors = []
    warnings = []

    # Check Python version
    print("\n1. Checking Python version...")
    if sys.version_info < (3, 10):
        errors.append(f"Python 3.10+ required, found {sys.version}")
    else:
        print(f"   OK: Python {sys.version_info.major}.{sys.version_info.minor}")

    # Try importing modules
    print("\n2. Checking module imports...")
    modules = [
        ("comicgen.workflow", "ComicWorkflow"),
        ("comicgen.gateway", "OpenAIComicGateway"),
        ("comicgen.persistence", "parse_project"),
        ("comicgen.comic_book", "ComicBookRenderer"),
        ("comicgen.ui", "TerminalUI"),
    ]
    for module_name, attribute in modules:
        try:
            module = __import__(module_name, fromlist=[attribute])
            getattr(module, attribute)
            print(f"   OK: {attribute}")
        except (ImportError, AttributeError) as e:
            errors.append(f"Failed to import {attribute}: {e}")

    # Check prompt templates and styles
    print("\n3. Checking prompts and styles...")
    try:
        from comicgen.prompt_loader import PROMPTS_DIR
        from comicgen.styles import STYLES
        templates = sorted(p.name for p in PROMPTS_DIR.glob("*.md"))
        print(f"   OK: {len(templates)} prompt templates")
        print(f"   OK: {len(STYLES)} styles")
        for style in STYLES:
            print(f"       - {style.name.value}")
    except ImportError as e:
        errors.append(f"Failed to load prompts or styles: {e}")

    # Run a session against the mock gateway
    print("\n4. Running an offline comic...")
    try:
        from comicgen.gateway import MockComicGateway
        from comicgen.workflow import ComicWorkflow
        from comicgen.styles import ComicStyle

        workflow = ComicWorkflow(MockComicGateway())
        workflow.start()
        workflow.submit_story("A lighthouse keeper finds a map in a bottle")
        workflow.suggest_characters()
        workflow.submit_characters()
        workflow.run_pending()
        workflow.approve_story()
        workflow.select_style(ComicStyle.WESTERN_COMIC)
        state = workflow.run_pending()
        summary = state.summary()
        print(f"   OK: reached {summary['stage']} with "
              f"{summary['panels_done']}/{summary['panels_total']} panels")
    except Exception as e:
        errors.append(f"Offline comic failed: {e}")

    # Check for API key
    print("\n5. Checking environment...")
    import os
    from dotenv import load_dotenv
    load_dotenv()

    api_key = os.getenv("OPENAI_API_KEY")
    if api_key:
        print(f"   OK: OPENAI_API_KEY found ({len(api_key)} chars)")
    else:
        warnings.append("OPENAI_API_KEY not set - ComicGen will use placeholder art")
        print("   WARN: OPENAI_API_KEY not set")

    # Summary
    print("\n" + "=" * 40)
    if errors:
        print("\nERRORS:")
        for err in errors:
            print(f"  - {err}")
        print(f"\nVerification FAILED with {len(errors)} error(s)")
        return False
    else:
        if warnings:
            print("\nWARNINGS:")
            for warn in warnings:
                print(f"  - {warn}")
        print("\nVerification PASSED!")
        print("\nTo create a comic, run:")
        print("  python main.py")
        print("  python app.py   (web API)")
        if warnings:
            print("\nNote: Set OPENAI_API_KEY in .env for AI-generated comics")
        return True


if __name__ == "__main__":
    success = verify_setup()
    sys.exit(0 if success else 1)
