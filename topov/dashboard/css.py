"""All CSS strings for the topov dashboard."""


def _button_row_css(
    row_id: str,
    *,
    align: str = "right middle",
    row_margin: str | None = None,
    button_margin: str = "0 0 0 1",
    width: str | None = None,
) -> str:
    width_rule = f"    width: {width};\n" if width else ""
    row_margin_rule = f"    margin: {row_margin};\n" if row_margin else ""
    return (
        f"#{row_id} {{\n"
        f"{width_rule}"
        "    height: 3;\n"
        f"    align: {align};\n"
        f"{row_margin_rule}"
        "}\n\n"
        f"#{row_id} Button {{\n"
        f"    margin: {button_margin};\n"
        "}\n"
    )


APP_CSS = f"""
Screen {{
    background: #000000;
    overflow: hidden;
}}

#title-bar {{
    height: 1;
    background: #0a1a2a;
    color: #00d7d7;
    padding: 0 1;
    margin: 0 0 1 0;
}}

#title-text {{
    width: auto;
    color: #00d7d7;
    text-style: bold;
}}

#mode-indicator {{
    width: 1fr;
    content-align: right middle;
    color: #3a5a5a;
}}

#device-table {{
    height: 1fr;
    background: #000000;
}}

#selection-line {{
    height: 1;
    padding: 0 1;
    color: #888888;
}}

#highlights {{
    height: auto;
    max-height: 8;
    padding: 0 1;
    border-top: solid #1a2a3a;
    color: #cccccc;
}}

.hidden {{
    display: none;
}}

{_button_row_css("detail-buttons", align="left middle", button_margin="0 1 0 0", width="100%")}
"""

STEP_DIALOG_CSS = f"""
StepDialogScreen {{
    align: center middle;
    background: transparent;
}}

#step-dialog {{
    width: 72;
    height: auto;
    max-height: 30;
    border: thick #00d7d7;
    background: #0a0a0a;
    padding: 1 2;
}}

#step-dialog Label {{
    width: 100%;
    margin: 0 0 1 0;
    color: #cccccc;
}}

#step-dialog .step-title {{
    color: #00d7d7;
    text-style: bold;
}}

#step-select {{
    width: 100%;
    margin: 0 0 1 0;
}}

#step-dialog Checkbox {{
    margin: 0;
}}

{_button_row_css("step-buttons", align="center middle", row_margin="1 0 0 0", button_margin="0 1", width="100%")}
"""

HELP_CSS = """
HelpScreen {
    align: center middle;
    background: transparent;
}

#help-dialog {
    width: 72;
    height: auto;
    max-height: 30;
    border: solid #00d7d7;
    background: #0a0a0a;
    padding: 1 3;
}

#help-dialog Label {
    margin: 0;
    color: #cccccc;
}

#help-dialog .help-title {
    margin: 0 0 1 0;
    color: #00d7d7;
    text-style: bold;
}

#help-dialog .help-section {
    width: 100%;
    margin: 1 0 0 0;
    color: #888888;
    text-style: bold;
}

#help-dialog .help-row {
    width: 100%;
    height: auto;
}

#help-dialog .help-key {
    width: 14;
    margin: 0 1 0 0;
    color: #00d7d7;
    text-style: bold;
}

#help-dialog .help-desc {
    width: 1fr;
}

#help-dialog .help-footer {
    margin: 1 0 0 0;
    color: #666666;
}
"""
