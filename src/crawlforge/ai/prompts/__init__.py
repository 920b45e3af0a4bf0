from jinja2 import StrictUndefined, Template

ANALYZER_SYSTEM = """\
You are a web crawling expert. You look at the HTML and screenshots of public job boards
(usually Korean municipal recruitment boards) and work out how a crawler can read them.
You answer with a single JSON object and nothing else.
"""

ANALYZER_PROMPT = Template(
    """
Analyze the structure of this job board and infer how to crawl it.

**Board URL:** {{ board_url }}

**List page HTML (first {{ list_limit }} characters):**
```html
{{ list_html }}
```

**Detail page HTML (first {{ detail_limit }} characters):**
{% if detail_html %}
```html
{{ detail_html }}
```
{% else %}
No detail page could be captured. Infer the detail page selectors from the list page and common board layouts.
{% endif %}

**Observed list page markup:**
{% for line in markup_lines %}
- {{ line }}
{% endfor %}

**Known crawler patterns:**

Pattern A (POST list, onclick links)
- The list is requested with a POST form submission
- Rows link through an onclick call such as `goView('12345')`; the id is pulled out with a regular expression
- The detail URL is built from that id

Pattern B (data-id attributes)
- The list is a plain GET page
- Each row or title anchor carries a `data-id` attribute
- The detail URL is a fixed template filled with the data-id

Pattern C (data-id with href fallback)
- The list is a plain GET page
- `data-id` is read first, the anchor `href` when it is missing
- Several fallback selectors are needed because the markup varies

**Determine:**
1. Which pattern (A, B or C) the board is most similar to
2. CSS selectors for the list container, the rows, and the title and date inside a row
3. How the detail link is obtained (data-id, href or onclick) and, for onclick, a regex whose first group is the id
4. How pagination works (query, POST or button)
5. CSS selectors for the detail page content, attachments and title

**Output format** (JSON only, no other text):
```json
{
  "mostSimilarPattern": "A",
  "confidence": 0.85,
  "listPage": {
    "containerSelector": "table.board-list",
    "rowSelector": "table.board-list tbody tr",
    "titleSelector": "td.title a",
    "dateSelector": "td.date",
    "linkExtraction": {
      "method": "data-id",
      "attribute": "data-id",
      "regex": null
    },
    "paginationType": "query"
  },
  "detailPage": {
    "contentSelector": ".board-view-content",
    "attachmentSelector": "a[href*='download']",
    "titleSelector": ".view-title"
  },
  "reasoning": "Two or three sentences explaining the choice."
}
```

- `confidence` is a number between 0.0 and 1.0
- Prefer selectors that survive small markup changes
    """.strip(),
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)

GENERATOR_SYSTEM = """\
You are a senior Python engineer who writes Playwright (async API) crawlers for job boards.
You answer with one complete Python module in a single ```python code block.
"""

GENERATOR_PROMPT = Template(
    """
Refine the crawler module below for the board **{{ board_name }}** ({{ board_url }}).

**Inferred board structure:**
```json
{{ analysis_json }}
```

**Reference implementation:**
```python
{{ reference_code }}
```

**Requirements:**
1. Keep exactly one public coroutine: `async def {{ function_name }}(page, config) -> list[dict]`
2. Keep the `FALLBACK_SELECTORS` table and try selectors in its order; selectors in `config["selectors"]` go first
3. Every returned dict has `title`, `date`, `link` (absolute URL), `detailContent` and `attachmentUrl`
4. Return at most `config["crawl_batch_size"]` records
5. Only import from the standard library; the `page` object is a Playwright async `Page`
6. A failing detail page must not abort the crawl

Return the complete module only.
    """.strip(),
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)

REPAIR_SYSTEM = """\
You fix broken Playwright (async API) crawler modules written in Python.
You answer with the complete corrected module in a single ```python code block.
"""

REPAIR_PROMPT = Template(
    """
The crawler for **{{ board_name }}** ({{ board_url }}) failed its sandbox run. Fix it.

**Errors from the last run:**
{% for error in errors %}
{{ loop.index }}. [{{ error.step }}] {{ error.error }}
{% else %}
(no errors were recorded)
{% endfor %}

{% if hints %}
**Likely causes:**
{% for hint in hints %}
- {{ hint }}
{% endfor %}

{% endif %}
{% if logs %}
**Last log lines:**
```
{% for line in logs %}
{{ line }}
{% endfor %}
```

{% endif %}
**Inferred board structure:**
```json
{{ analysis_json }}
```

**Current code:**
```python
{{ code }}
```

**Rules:**
1. Keep the single public coroutine `async def <name>(page, config) -> list[dict]`
2. Records need `title` (3+ characters), `link`, and `detailContent` (50+ characters) plus `date` and `attachmentUrl`
3. Prefer adding fallback selectors over replacing working ones
4. Only import from the standard library

Return the complete corrected module only.
    """.strip(),
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)
