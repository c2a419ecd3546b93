"""Host adapters that observe a ReactiveSentence."""
