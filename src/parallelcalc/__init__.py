"""
parallelcalc -- a start -> map -> reduce calculation, run in memory, through text, over threads, as a pipeline of
processes or as a Hadoop streaming job. See `parallelcalc.pa` for the strategies and `parallelcalc.calc` for the
contract a calculation implements.
"""
