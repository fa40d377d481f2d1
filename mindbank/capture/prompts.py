CLASSIFICATION_PROMPT = """
Analyze this text: {text}
Determine if it is a single word/short idiom to be defined, or a quote/thought.
If it is a quote, strip any spoken attribution ("by X", "from Y", "as X said") out of the quote
and report it separately as author and source (book/movie/speech). Identify the author and source
if the quote is well known.
{context}
Return ONLY a JSON object with this schema:
{{
  "type": "word" | "quote",
  "cleaned_text": "the word, or the quote with attribution removed",
  "definition": "dictionary definition if word",
  "partOfSpeech": "noun/verb/etc if word",
  "example": "example sentence if word",
  "meaning": "one or two sentences on the quote's significance if quote",
  "author": "Author Name if known quote, else null",
  "source": "Book Title/Source if known quote, else null",
  "tags": ["3", "short", "lowercase tags"]
}}
""".strip()

CONTEXT_HINT = 'The user is reading "{title}"{by}. Assume the quote comes from it.'

INSIGHT_PROMPT = """
These are quotes a reader saved from "{title}"{by}:
{quotes}

Write a short thematic summary of what these passages say together.
Return ONLY a JSON object with this schema:
{{
  "summary": "3-5 sentences of prose",
  "meaning": "one sentence takeaway",
  "tags": ["3", "short", "lowercase themes"]
}}
""".strip()

TRANSLATE_TEXT_PROMPT = """
Translate this text into {lang}. Keep the tone and imagery.
Text: {text}
Return ONLY a JSON object: {{"text": "translated text"}}
""".strip()

TRANSLATE_WORD_PROMPT = """
Translate the word {word} into {lang} and give a short definition in {lang}.
English definition for reference: {definition}
Return ONLY a JSON object: {{"word": "translated word", "definition": "definition in {lang}"}}
""".strip()
