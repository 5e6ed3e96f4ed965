# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Prompt templates for verified file summarization.

Templates are rendered with ``str.format``; substituted values are never
re-interpreted, so file content needs no brace escaping.
"""

from codeindex.llm_client import ChatMessage

NOT_APPLICABLE: str = "Not Applicable Here"

SUMMARY_SYSTEM_PROMPT = """You are an experienced software engineer documenting one file of a larger codebase. Explain the business logic and the algorithmic logic of the file in precise detail and return the result as JSON. Work through these steps:

1. Overview: read the file against the rest of the codebase and write an accurate description of what the file does and why it exists.

2. Category: choose exactly one tag for the file's main role:
    - ui: the file implements user interface elements where users interact with the application.
    - dataAccess: the file reads or writes data in a database or other storage, or fetches data and manages application state on the frontend.
    - utility: the file is a collection of reusable helpers offering general functionality.
    - feature: the file delivers a distinct business capability, such as a large frontend component or a module.

3. Elements: break the file into its functions, variables and methods. For each one explain its purpose, how it interacts with other code and where it sits in the hierarchy.

4. Logic:
    a. Algorithmic logic: describe how the algorithms are structured, how data moves through them and which decisions they take, with the reasoning behind each choice.
    b. Business logic: describe the rules and workflows the code implements and how they become concrete operations.
    c. Flow: describe the sequence of events from start to finish, including method calls, state changes and interactions between objects.

5. Output: return a single JSON object following this template:

{{
    "fileDescription": "<detailed description>",
    "tag": "<ui | dataAccess | utility | feature>",
    "elementsDetail": {{
        "functions": {{"<functionName>": {{"description": "<purpose>", "interactions": "<collaborators>"}}}},
        "variables": {{"<variableName>": {{"description": "<role>", "interactions": "<usage>"}}}},
        "methods": {{"<methodName>": {{"description": "<purpose>", "interactions": "<collaborators>"}}}}
    }},
    "algorithmicLogic": {{"description": "<structures and flow>", "rationale": "<why>"}},
    "businessLogic": {{"rules": "<business rules>", "workflows": "<workflows>"}},
    "flowDescription": {{"initialization": "<how the flow starts>", "processingSteps": ["<step>", "<step>"]}}
}}

Fill only the sections that apply to the file. "fileDescription" and "tag" are always required; write "{not_applicable}" for a required value you cannot determine.

6. Review: check the JSON once more and make sure it gives a technical, detailed account of the mechanisms, data flow and structure of the file.

{format_instructions}"""

FILE_PROMPT = """MAIN FILE START
File Name: {file_name}
Content:
{file_content}
MAIN FILE END

Everything below only adds context to the main file above. Keep the focus on the main file.

RELATED FILES START
{dependencies}
RELATED FILES END

COMPILED FILE START
The same source with types and comments removed, if available. Use it only as supporting context.
{compiled_file}
COMPILED FILE END
"""

DENSITY_PROMPT = """Check whether your previous answer fully follows the instructions and improve it where it does not.

Go deeper into the main file: its elements, how they relate and what they do. Keep the wording tight so every sentence adds information, and keep exactly the JSON structure described earlier.

An independent reviewer examined the file. Rely on this review to correct and extend your answer.
Reviewer questions:
{questions}

Answers taken from the file:
{answers}

Focus on the main file. Return only the JSON object."""

VERIFICATION_SYSTEM_PROMPT = """You are a software engineering expert.
Read the file summary below and write questions whose answers would show whether the summary is accurate."""

CORRECTION_SYSTEM_PROMPT = """You are a software engineering expert.
Answer the following questions using only the file shared with you.
Questions:
{questions}"""

REPAIR_PROMPT = """Your previous output could not be parsed as the required JSON object.
Error: {error}

Return the same content again as one valid JSON object and nothing else.
{format_instructions}

Previous output:
{output}"""


def summary_system_message(format_instructions: str) -> ChatMessage:
    return ChatMessage(
        role="system",
        content=SUMMARY_SYSTEM_PROMPT.format(
            not_applicable=NOT_APPLICABLE, format_instructions=format_instructions
        ),
    )


def render_file_prompt(
    file_name: str, file_content: str, dependencies: str = "", compiled_file: str = ""
) -> str:
    """Render the main file prompt with its context sections.

    Args:
        file_name: Absolute path of the main file.
        file_content: Main file text.
        dependencies: Concatenated related file texts.
        compiled_file: Type-erased rendering of the main file.

    Returns:
        Prompt text.
    """
    return FILE_PROMPT.format(
        file_name=file_name,
        file_content=file_content,
        dependencies=dependencies or NOT_APPLICABLE,
        compiled_file=compiled_file or NOT_APPLICABLE,
    )


def verification_messages(draft: str) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=VERIFICATION_SYSTEM_PROMPT),
        ChatMessage(role="user", content=draft),
    ]


def correction_messages(questions: str, file_prompt: str) -> list[ChatMessage]:
    return [
        ChatMessage(
            role="system", content=CORRECTION_SYSTEM_PROMPT.format(questions=questions)
        ),
        ChatMessage(role="user", content=file_prompt),
    ]


def density_messages(
    system: ChatMessage, file_prompt: str, draft: str, questions: str, answers: str
) -> list[ChatMessage]:
    """Build the refinement conversation for the next round."""
    return [
        system,
        ChatMessage(role="user", content=file_prompt),
        ChatMessage(role="assistant", content=draft),
        ChatMessage(
            role="user",
            content=DENSITY_PROMPT.format(questions=questions, answers=answers),
        ),
    ]


def repair_messages(
    output: str, error: str, format_instructions: str
) -> list[ChatMessage]:
    return [
        ChatMessage(
            role="user",
            content=REPAIR_PROMPT.format(
                error=error, format_instructions=format_instructions, output=output
            ),
        )
    ]
