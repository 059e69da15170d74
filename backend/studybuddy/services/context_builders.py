"""
StudyBuddy Backend — Context Builders
=======================================

What:  Pure functions turning notes, slide metadata and a highlighted excerpt
       into text blocks appended to a system prompt.
How:   Plain string assembly. No I/O, no shared state; equal inputs always
       produce byte-identical output.

Every block is framed as soft guidance: the model may use it, but is never
told it is limited to it. The highlighted excerpt is the one exception: it is
marked as the focus of the answer.
"""

from typing import Optional, Sequence

from studybuddy.schemas.assistant import NoteRef

SLIDE_INDEX_PLACEHOLDER = "Current"


def build_notes_context(notes: Optional[Sequence[NoteRef]]) -> str:
    """
    Render the student's notes as a reference-material block.

    Returns an empty string for None or an empty sequence. Otherwise one entry
    per note, in input order: title, space-joined content, comma-joined tags.
    """
    if not notes:
        return ""

    lines = [
        "",
        "",
        "📚 **REFERENCE MATERIALS (Student's Notes):**",
        "The student has taken these notes. Use them as context but feel free "
        "to expand beyond them.",
        "",
    ]
    for number, note in enumerate(notes, start=1):
        lines.append(f"Note {number}: {note.title}")
        if note.content:
            lines.append(" ".join(note.content))
        if note.tags:
            lines.append(f"Topics: {', '.join(note.tags)}")
        lines.append("")

    return "\n".join(lines) + "\n"


def build_slide_context(slide_text: Optional[str], slide_index: Optional[int]) -> str:
    """
    Render the current slide's number and extracted text.

    Always returns a block. The index falls back to "Current"; the content
    line is left out when there is no slide text.
    """
    index = SLIDE_INDEX_PLACEHOLDER if slide_index is None else slide_index
    context = "\n\n📊 **SLIDE INFORMATION:**\n"
    context += f"Slide Number: {index}\n"
    if slide_text:
        context += f"Slide Content:\n{slide_text}\n"
    return context


def build_current_slide_context(slide_text: Optional[str], slide_index: Optional[int]) -> str:
    """
    CHAT-mode variant of the slide block, explicitly non-restrictive.

    Empty when neither slide text nor index is known.
    """
    if not slide_text and slide_index is None:
        return ""

    viewing = f"Slide {slide_index}" if slide_index is not None else "a lecture slide"
    context = "\n\n📊 **CURRENT CONTEXT:**\n"
    context += f"The student is currently viewing {viewing}.\n"
    if slide_text:
        context += f"Slide content: {slide_text}\n"
    context += (
        "This is just for context - feel free to answer beyond this material if needed.\n"
    )
    return context


def build_highlight_context(highlighted_text: Optional[str]) -> str:
    """The excerpt the student selected; the answer must focus on it."""
    if not highlighted_text:
        return ""
    return (
        "\n\n🔎 **HIGHLIGHTED EXCERPT (focus):**\n"
        f"{highlighted_text}\n"
        "Please focus your explanation on this excerpt and clarify any terms, "
        "implications, or steps needed to fully understand it.\n"
    )


def build_slide_name_context(slide_name: Optional[str]) -> str:
    if not slide_name:
        return ""
    return f"\n\nSlide Title: {slide_name}\n"
