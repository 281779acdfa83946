"""yolospots CLI — Click commands and Rich output."""
