"""SecondBrain — capture raw material, distil it into searchable insights."""
