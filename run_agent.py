#!/usr/bin/env python3
"""Command-line entry point for the internship autopilot.

Examples:
  python run_agent.py apply --email me@example.com --password ... --role "Data Analyst" --type internship
  python run_agent.py recommend --skills "python, sql" --min-stipend 5000
  python run_agent.py jobs --platforms Remotive JSearch --skills python --field software-dev
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

from internpilot import api
from internpilot.config import get_env
from internpilot.log import get_logger
from internpilot.workflow import close_kept_sessions

log = get_logger(__name__)


def _apply(args: argparse.Namespace):
    body = {
        "email": args.email or get_env("INTERNSHALA_EMAIL"),
        "password": args.password or get_env("INTERNSHALA_PASSWORD"),
        "role": args.role,
        "type": args.type,
        "location": args.location,
        "minStipend": args.min_stipend,
        "maxStipend": args.max_stipend,
        "duration": args.duration,
        "resumeFile": args.resume,
    }
    return asyncio.run(api.handle_auto_apply(body))


async def _login_and_wait(body: dict):
    status, payload = await api.handle_auto_login(body)
    if status == 200:
        print(json.dumps(payload, indent=2))
        try:
            input("Press Enter to close the browser... ")
        finally:
            await close_kept_sessions()
    return status, payload


def _login(args: argparse.Namespace):
    body = {
        "email": args.email or get_env("INTERNSHALA_EMAIL"),
        "password": args.password or get_env("INTERNSHALA_PASSWORD"),
    }
    return asyncio.run(_login_and_wait(body))


def _recommend(args: argparse.Namespace):
    body = {
        "skills": args.skills,
        "minStipend": args.min_stipend,
        "maxStipend": args.max_stipend,
        "email": args.email,
        "password": args.password,
    }
    return asyncio.run(api.handle_recommend(body))


def _jobs(args: argparse.Namespace):
    return api.handle_jobs({
        "platforms": args.platforms,
        "skills": args.skills,
        "field": args.field,
        "minStipend": args.min_stipend,
        "maxStipend": args.max_stipend,
    })


def _skill_match(args: argparse.Namespace):
    return api.handle_skill_match({"userSkills": args.user_skills, "jobRequirements": args.requirements})


def _cover_letter(args: argparse.Namespace):
    return api.handle_cover_letter({"jobDescription": args.description})


def _resume_optimize(args: argparse.Namespace):
    resume_text = args.resume_text
    if args.resume_file:
        with open(args.resume_file, "r", encoding="utf-8") as f:
            resume_text = f.read()
    return api.handle_resume_optimize({"jobDescription": args.description, "resumeText": resume_text})


def _applications(args: argparse.Namespace):
    return api.handle_applications(args.status)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="internpilot", description="Internship search and auto-apply")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("apply", help="log in, rank listings and apply to the top five")
    p.add_argument("--email")
    p.add_argument("--password")
    p.add_argument("--role", required=True)
    p.add_argument("--type", default="internship", choices=["internship", "job"])
    p.add_argument("--location")
    p.add_argument("--min-stipend", type=int)
    p.add_argument("--max-stipend", type=int)
    p.add_argument("--duration", help='e.g. "3 months"')
    p.add_argument("--resume", help="path to a resume file to upload")
    p.set_defaults(func=_apply)

    p = sub.add_parser("login", help="log in with a visible browser and save cookies")
    p.add_argument("--email")
    p.add_argument("--password")
    p.set_defaults(func=_login)

    p = sub.add_parser("recommend", help="recommend internships for a skills string")
    p.add_argument("--skills", required=True)
    p.add_argument("--min-stipend", type=int)
    p.add_argument("--max-stipend", type=int)
    p.add_argument("--email")
    p.add_argument("--password")
    p.set_defaults(func=_recommend)

    p = sub.add_parser("jobs", help="search several listing platforms at once")
    p.add_argument("--platforms", nargs="+", required=True, help="Indeed JSearch Remotive Internshala")
    p.add_argument("--skills", required=True)
    p.add_argument("--field", required=True)
    p.add_argument("--min-stipend", type=int, default=0)
    p.add_argument("--max-stipend", type=int, default=1_000_000)
    p.set_defaults(func=_jobs)

    p = sub.add_parser("skill-match", help="compare your skills with a job's requirements")
    p.add_argument("--user-skills", required=True)
    p.add_argument("--requirements", required=True)
    p.set_defaults(func=_skill_match)

    p = sub.add_parser("cover-letter", help="draft a cover letter for a job description")
    p.add_argument("--description", required=True)
    p.set_defaults(func=_cover_letter)

    p = sub.add_parser("resume-optimize", help="tailor resume text to a job description")
    p.add_argument("--description", required=True)
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--resume-text")
    src.add_argument("--resume-file", help="plain-text resume")
    p.set_defaults(func=_resume_optimize)

    p = sub.add_parser("applications", help="show tracked application outcomes")
    p.add_argument("--status")
    p.set_defaults(func=_applications)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    status, payload = args.func(args)
    if args.command != "login" or status != 200:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    if status >= 400:
        log.error("%s failed with status %d", args.command, status)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
