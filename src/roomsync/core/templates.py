"""Starter content for new rooms."""

from __future__ import annotations

from roomsync.models.enums import CodeLanguage
from roomsync.models.room import RoomSeed

DEFAULT_INSTRUCTIONS = """# Interview Instructions

## Overview
Welcome to this technical interview session. Please follow these guidelines:

## Round 1: Technical Discussion (15 mins)
- Discuss your experience with the relevant stack
- Share examples of challenging problems you've solved
- Explain your approach to code organization and architecture

## Round 2: Coding Challenge (30 mins)
- Use the Code Editor tab to implement the solution
- Think out loud as you work through the problem
- Feel free to ask clarifying questions

## Round 3: System Design (15 mins)
- Use the Drawing tab to sketch your solution
- Explain scalability considerations
- Discuss trade-offs in your design

## Notes
- All sections are collaborative and real-time
- Take your time and ask questions if anything is unclear
- Use the chat for any additional communication
"""

FALLBACK_TEMPLATE = "// Start coding here..."

LANGUAGE_TEMPLATES: dict[str, str] = {
    CodeLanguage.JAVASCRIPT: """// JavaScript Code
function fibonacci(n) {
  if (n <= 1) return n;
  return fibonacci(n - 1) + fibonacci(n - 2);
}

console.log(fibonacci(10));""",
    CodeLanguage.TYPESCRIPT: """// TypeScript Code
interface User {
  id: number;
  name: string;
}

function greetUser(user: User): string {
  return `Hello, ${user.name}!`;
}

console.log(greetUser({ id: 1, name: "John" }));""",
    CodeLanguage.PYTHON: """# Python Code
def fibonacci(n):
    if n <= 1:
        return n
    return fibonacci(n - 1) + fibonacci(n - 2)

print(fibonacci(10))""",
    CodeLanguage.JAVA: """// Java Code
public class Main {
    public static void main(String[] args) {
        System.out.println(fibonacci(10));
    }

    public static int fibonacci(int n) {
        if (n <= 1) return n;
        return fibonacci(n - 1) + fibonacci(n - 2);
    }
}""",
    CodeLanguage.CPP: """// C++ Code
#include <iostream>
using namespace std;

int fibonacci(int n) {
    if (n <= 1) return n;
    return fibonacci(n - 1) + fibonacci(n - 2);
}

int main() {
    cout << fibonacci(10) << endl;
    return 0;
}""",
    CodeLanguage.HTML: """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Interview Challenge</title>
</head>
<body>
    <h1>Hello, World!</h1>
</body>
</html>""",
    CodeLanguage.CSS: """/* CSS Code */
body {
    font-family: 'Arial', sans-serif;
    line-height: 1.6;
}

.container {
    max-width: 1200px;
    margin: 0 auto;
}""",
}


def language_template(language: str) -> str:
    """Return the starter code for *language*."""
    return LANGUAGE_TEMPLATES.get(language, FALLBACK_TEMPLATE)


def default_seed(
    instructions: str | None = None, language: str = CodeLanguage.JAVASCRIPT
) -> RoomSeed:
    return RoomSeed(
        instructions=DEFAULT_INSTRUCTIONS if instructions is None else instructions,
        language=language,
        code=language_template(language),
    )
